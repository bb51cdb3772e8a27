from sqlmodel import SQLModel, Field
from typing import Optional, Union

class FacilityRow(SQLModel):
    """Row of the external ``facilities`` table"""
    id: Union[int, str]
    type: Optional[str] = None
    name: str = ""
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

class HazardZoneRow(SQLModel):
    """Row of the external ``risk_zones`` table"""
    id: Union[int, str]
    route_id: Optional[Union[int, str]] = None
    type: Optional[str] = None
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    radius: Optional[float] = Field(default=None, ge=0)
    message: Optional[str] = None
