"""ASGI entrypoint for the nutrition ledger API."""

from nutrition_ledger.api.app import create_app
from nutrition_ledger.containers import build_container

app = create_app(build_container())
