"""
Runs the journal API under uvicorn.
Storage and demo data are set up by the application lifespan, so this
script only checks that settings load before handing over.
"""
import sys

import uvicorn

BANNER = "=" * 60


def main() -> int:
    print(BANNER)
    print("OPTIONS TRADE JOURNAL")
    print(BANNER)

    try:
        from src.config import get_settings
        settings = get_settings()
    except Exception as e:
        print(f"[ERROR] Could not load settings: {e}")
        print("        Is SECRET_KEY set (32+ characters)?")
        return 1

    print(f"[OK] Storage: {settings.storage_backend}"
          f"{' (demo data)' if settings.seed_demo_data else ''}")
    print(f"[OK] Quotes: {'Alpha Vantage' if settings.alpha_vantage_api_key else 'disabled, no API key'}")
    print(f"\nListening on http://{settings.host}:{settings.port}  (docs at /docs)")
    print(BANNER + "\n")

    try:
        uvicorn.run(
            "src.main:app",
            host=settings.host,
            port=settings.port,
            log_level="debug" if settings.debug else "info",
        )
    except KeyboardInterrupt:
        print("\n[OK] Shutdown requested")
    return 0


if __name__ == "__main__":
    sys.exit(main())
