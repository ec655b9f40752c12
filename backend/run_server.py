"""Server runner: `python run_server.py` from the backend directory."""
import uvicorn

from medorder.core.config import settings

if __name__ == "__main__":
    print("=" * 50)
    print("  Starting MedOrder Backend")
    print("=" * 50)
    uvicorn.run(
        "medorder.main:app",
        host="127.0.0.1",
        port=8000,
        log_level=settings.LOG_LEVEL.lower(),
    )
