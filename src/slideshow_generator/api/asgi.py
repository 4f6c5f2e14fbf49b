"""ASGI entrypoint for the slideshow generator API."""

from slideshow_generator.api.app import create_app
from slideshow_generator.containers import build_container

app = create_app(build_container())
