from __future__ import annotations

from influxdb_client import InfluxDBClient

DEFAULT_INFLUX_TIMEOUT_MS = 10_000


def create_influx_client(
    *,
    url: str,
    token: str = "",
    org: str = "-",
    timeout_ms: int = DEFAULT_INFLUX_TIMEOUT_MS,
) -> InfluxDBClient:
    return InfluxDBClient(url=url, token=token, org=org, timeout=timeout_ms)


def bucket_for(database: str, retention_policy: str = "") -> str:
    if retention_policy:
        return f"{database}/{retention_policy}"
    return database
