"""FastAPI dependencies resolving the engine objects held in app state."""

from fastapi import Request

from streaks.services.contributions_service import ContributionsService
from streaks.services.settings_store import SettingsStore


def get_contributions_service(request: Request) -> ContributionsService:
    return request.app.state.contributions_service


def get_settings_store(request: Request) -> SettingsStore:
    return request.app.state.settings_store
