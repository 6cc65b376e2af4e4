from typing import Annotated
from fastapi import Depends, Request

from app.modules.preferences.service import PreferencesService
from app.modules.preferences.storage import PreferenceStorage


def get_preference_storage(request: Request) -> PreferenceStorage:
    """Storage creado al arrancar la app (ver app.main)"""
    return request.app.state.preference_storage


def get_preferences_service(
    storage: PreferenceStorage = Depends(get_preference_storage)
) -> PreferencesService:
    return PreferencesService(storage)


preferences_dependency = Annotated[PreferencesService, Depends(get_preferences_service)]
