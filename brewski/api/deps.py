from __future__ import annotations

from fastapi import Request

from brewski.services.harness import SensorHarness


def get_harnesses(request: Request) -> list[SensorHarness]:
    return list(request.app.state.harnesses)
