import sys

import uvicorn

from .app import create_app
from .logging_utils import get_logger


log = get_logger("transcription-api")


def main() -> int:
    app = create_app()
    server_cfg = app.state.config["server"]
    host, port = server_cfg["host"], int(server_cfg["port"])
    log.info("server.start", extra={"host": host, "port": port})
    config = uvicorn.Config(app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)
    # uvicorn raises SystemExit(1) on its own when the port cannot be bound
    server.run()
    if not server.started:
        log.error("server.bind_failed", extra={"host": host, "port": port})
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
