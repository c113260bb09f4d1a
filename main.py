import os
import signal
import sys
import traceback
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

# Load .env before reading PORT/HOST/ENVIRONMENT
env_path = Path(__file__).resolve().parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


if __name__ == "__main__":
    """
    Entry point for InstaClone.
    Starts the API server.
    """
    root_dir = os.path.dirname(os.path.abspath(__file__))

    PORT = int(os.getenv("PORT", "8000"))
    HOST = os.getenv("HOST", "127.0.0.1")
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()
    RELOAD = ENVIRONMENT == "development"
    WORKERS = int(os.getenv("WORKERS", "1")) if ENVIRONMENT == "production" else 1

    print(f"Starting InstaClone from {root_dir}...")
    print(f"Environment: {ENVIRONMENT}")
    print(f"API available at http://{HOST}:{PORT}/api")
    print("Press CTRL+C to stop the server")

    def signal_handler(sig, frame):
        print("\n\nShutdown signal received. Stopping server...")
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, signal_handler)

    try:
        # Posting locks are file based, so several workers can share one data dir
        if ENVIRONMENT == "production" and WORKERS > 1:
            uvicorn.run("web.main:app", host=HOST, port=PORT, workers=WORKERS, log_level="info")
        else:
            uvicorn.run(
                "web.main:app",
                host=HOST,
                port=PORT,
                reload=RELOAD,
                log_level="info" if ENVIRONMENT == "production" else "debug",
            )
    except KeyboardInterrupt:
        print("\n\nShutdown complete.")
        sys.exit(0)
    except Exception as e:
        print(f"\nFatal error: {e}", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
        sys.exit(1)
