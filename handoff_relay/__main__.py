import uvicorn

from handoff_relay.config import settings


def main() -> None:
    uvicorn.run("handoff_relay.main:app", host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
