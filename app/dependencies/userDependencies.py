from typing import Annotated
from fastapi import Depends
from app.modules.auth.dependencies import get_auth_context
from app.modules.auth.schemas import AuthContext

auth_dependency = Annotated[AuthContext, Depends(get_auth_context)]
