"""Configuration for the agent and the server."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class AgentConfig:
    """Settings for the metric collecting agent."""

    server_address: str = ""
    log_level: str = ""
    poll_interval: int = 0
    report_interval: int = 0
    num_workers: int = 0


@dataclass
class ServerConfig:
    """Settings for the HTTP metric server."""

    address: str = ""
    log_level: str = ""