import uvicorn

from kanflow.config import settings


def main() -> None:
    uvicorn.run("kanflow.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)


if __name__ == "__main__":
    main()
