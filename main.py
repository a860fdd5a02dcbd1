import os

import uvicorn


def main() -> None:
    reload_enabled = os.getenv("BREWSKI_ENV", "development").lower() != "production"
    uvicorn.run(
        "brewski.main:app",
        host=os.getenv("BREWSKI_HOST", "0.0.0.0"),
        port=int(os.getenv("BREWSKI_PORT", "8000")),
        reload=reload_enabled,
    )


if __name__ == "__main__":
    main()
