from fastapi import APIRouter

_SECRET_MARKERS = ("KEY", "TOKEN", "PASSWORD", "SECRET")


def _is_secret(key: str) -> bool:
    return any(marker in key.upper() for marker in _SECRET_MARKERS) or key.upper() == "DATABASE_URL"


def create_systems_router(container_env: dict):
    """Create systems router with access to container environment config."""
    router = APIRouter(tags=["System"])

    @router.get("/health")
    def health():
        return {"status": "ok"}

    @router.get("/systems/config")
    def get_config():
        """Return current environment configuration values, secrets masked."""
        env = {}
        for key, value in container_env.items():
            if value is None:
                env[key] = None
            elif _is_secret(key):
                env[key] = "***"
            else:
                env[key] = str(value)
        return {"environment": env}

    return router
