import uvicorn

from fansite.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run("fansite.app:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
