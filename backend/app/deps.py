"""Request-scoped access to the state created by create_app."""

from fastapi import Request

from skylineanalyzr.config import Settings
from skylineanalyzr.dataset import Dataset
from skylineanalyzr.sources.manager import SourceManager


def get_dataset(request: Request) -> Dataset:
    return request.app.state.dataset


def get_sources(request: Request) -> SourceManager:
    return request.app.state.sources


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
