from fastapi import Depends, Request
from typing import Annotated

from hikepal.core.companion import Companion

# Dependency to get the running companion
def get_companion(request: Request) -> Companion:
    return request.app.state.companion

CompanionDep = Annotated[Companion, Depends(get_companion)]
