"""Uvicorn server runner with custom configuration."""

import copy
import logging
import re
from typing import Any

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from keygate.app import App
from keygate.config import Config
from keygate.web.server import create_fastapi_app

# WebSocket clients pass connection tokens in the query string, which uvicorn logs verbatim
_TOKEN_QUERY = re.compile(r"(?<=[?&]token=)[^&\s\"]*")


class RedactTokenFilter(logging.Filter):
    """Replace ``?token=`` values in uvicorn log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.args, tuple):
            record.args = tuple(
                _TOKEN_QUERY.sub("<redacted>", arg) if isinstance(arg, str) else arg for arg in record.args
            )
        return True


def build_log_config(config: Config) -> dict[str, Any]:
    log_config = copy.deepcopy(LOGGING_CONFIG)
    log_config["formatters"]["access"]["fmt"] = '%(asctime)s - "%(request_line)s" %(status_code)s'
    log_config["formatters"]["default"]["fmt"] = "%(asctime)s - %(levelname)s - %(message)s"

    log_config["filters"] = {"redact_tokens": {"()": RedactTokenFilter}}
    for handler in log_config["handlers"].values():
        handler["filters"] = ["redact_tokens"]

    if config.debug:
        log_config["loggers"]["uvicorn"]["level"] = "DEBUG"
    return log_config


def run_server(app: App, config: Config) -> None:
    """Run the Uvicorn server with custom logging configuration."""
    fastapi_app = create_fastapi_app(app, config)
    uvicorn.run(fastapi_app, host=config.host, port=config.port, log_config=build_log_config(config), access_log=True)
