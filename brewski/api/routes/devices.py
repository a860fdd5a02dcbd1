from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from brewski.api.deps import get_harnesses
from brewski.schemas.devices import DeviceStatus
from brewski.services.harness import SensorHarness

router = APIRouter(prefix="/devices")


@router.get("", response_model=list[DeviceStatus])
def list_devices(
    harnesses: Annotated[list[SensorHarness], Depends(get_harnesses)],
) -> list[DeviceStatus]:
    rows = [DeviceStatus.from_harness(h) for h in harnesses]
    rows.sort(key=lambda r: r.name)
    return rows


@router.get("/{name}", response_model=DeviceStatus)
def get_device(
    name: str,
    harnesses: Annotated[list[SensorHarness], Depends(get_harnesses)],
) -> DeviceStatus:
    for harness in harnesses:
        if harness.name == name:
            return DeviceStatus.from_harness(harness)
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown device")
