"""ASGI entrypoint for the Strategy Squares API."""

from strategy_squares.api.app import create_app
from strategy_squares.containers import build_container

app = create_app(build_container())
