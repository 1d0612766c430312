import argparse
import os
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from order_pricing.config.settings import get_settings


def main():
    parser = argparse.ArgumentParser(description="Serve the order pricing API")
    parser.add_argument("--host", default=os.getenv("API_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("API_PORT", "8000")))
    parser.add_argument("--reload", action="store_true", help="Restart on source changes")
    args = parser.parse_args()

    import uvicorn

    settings = get_settings()
    print("Starting Order Pricing API (FastAPI)...")
    print(f"Catalog: {settings.catalog_csv}")
    print(f"Orders: {settings.orders_json}")
    print(f"Origin city: {settings.origin_city}")
    print(f"API docs: http://{args.host}:{args.port}/docs")

    # Reload needs the app as an import string and PYTHONPATH for the reloader process
    if args.reload:
        os.environ["PYTHONPATH"] = os.pathsep.join(filter(None, [str(src_path), os.getenv("PYTHONPATH")]))
        app_target = "order_pricing.api.main:app"
    else:
        from order_pricing.api.main import app
        app_target = app

    try:
        # One worker: the JSON order store is a single file
        uvicorn.run(app_target, host=args.host, port=args.port, reload=args.reload, workers=1)
    except KeyboardInterrupt:
        print("\nAPI stopped.")


if __name__ == "__main__":
    main()
