"""Run the draft order service with uvicorn."""

import uvicorn

from draftorders.config import get_settings


def main():
    settings = get_settings()
    uvicorn.run("draftorders.main:app", host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
