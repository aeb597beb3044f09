import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional
from urllib.robotparser import RobotFileParser


@dataclass(frozen=True)
class _ParsedRobots:
    directives: str
    parser: RobotFileParser
    parsed_at: float


class RobotsCache:
    """
    Parsed robots directives keyed by domain, bounded by LRU size and age.

    Entries remember the directives text they were parsed from, so a policy
    update for the domain invalidates the parser automatically. A
    non-positive `ttl_seconds` disables reuse entirely.
    """

    def __init__(self, *, max_size: int = 2048, ttl_seconds: int = 3600):
        self.max_size = max(1, int(max_size or 1))
        self.ttl_seconds = max(0, int(ttl_seconds or 0))
        self._lock = threading.Lock()
        self._entries: "OrderedDict[str, _ParsedRobots]" = OrderedDict()

    def _fresh(self, entry: _ParsedRobots, directives: str) -> bool:
        if entry.directives != directives or self.ttl_seconds == 0:
            return False
        return time.time() - entry.parsed_at <= self.ttl_seconds

    def parser_for(self, domain: str, directives: Optional[str]) -> Optional[RobotFileParser]:
        """Return a parser for `directives`, reusing the cached one when still valid.

        Returns None when the domain has no directives (everything allowed).
        """
        if not directives:
            return None
        with self._lock:
            entry = self._entries.get(domain)
            if entry is None or not self._fresh(entry, directives):
                parser = RobotFileParser()
                parser.parse(directives.splitlines())
                entry = _ParsedRobots(directives, parser, time.time())
                self._entries[domain] = entry
            self._entries.move_to_end(domain)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)
            return entry.parser

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
