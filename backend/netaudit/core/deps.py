import uuid
from typing import Annotated

from fastapi import Depends, HTTPException, status
from sqlmodel import Session

from netaudit.core.config import Settings, get_settings
from netaudit.db.session import get_session
from netaudit.models.site import Site

DBSession = Annotated[Session, Depends(get_session)]
AppSettings = Annotated[Settings, Depends(get_settings)]


def get_site(site_id: uuid.UUID, session: DBSession) -> Site:
    site = session.get(Site, site_id)
    if not site:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Site not found")
    return site


SiteDep = Annotated[Site, Depends(get_site)]
