import os

from fastapi.openapi.utils import get_openapi
from dotenv import load_dotenv

# Load environment variables before the settings module reads them
load_dotenv()  # This reads .env into os.environ

from fieldquote.main import app  # noqa: E402


def custom_openapi() -> dict:
    """Return OpenAPI schema with project metadata."""
    if app.openapi_schema:
        return app.openapi_schema
    app.openapi_schema = get_openapi(
        title="Field Service Quote Engine",
        version="1.0.0",
        description=(
            "Quotes recurring and one-time field-service contracts from remotely "
            "configured rate schedules, with operator overrides."
        ),
        routes=app.routes,
    )
    return app.openapi_schema


app.openapi = custom_openapi

if __name__ == "__main__":
    import uvicorn

    workers = int(os.getenv("UVICORN_WORKERS", "1"))
    keepalive = int(os.getenv("UVICORN_KEEPALIVE", "65"))
    uvicorn.run(
        "fieldquote.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("UVICORN_RELOAD", "").lower() in {"1", "true", "yes"},
        workers=workers,
        timeout_keep_alive=keepalive,
    )
