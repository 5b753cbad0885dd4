# trialhold/__main__.py
from __future__ import annotations
import uvicorn

from trialhold.core.settings import settings


def main() -> None:
    uvicorn.run("trialhold.main:app", host="0.0.0.0", port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
