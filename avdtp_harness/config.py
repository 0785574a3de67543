"""
Harness configuration management
"""
from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Conformance harness settings"""

    model_config = SettingsConfigDict(env_prefix="AVDTP_HARNESS_", env_file=".env")

    # Diagnostics
    verbose: bool = False  # hex-dump every PDU sent and received
    trace_prefix: str = "AVDTP: "

    # Session under test
    signaling_mtu: int = 672
    protocol_version: int = 0x0100

    # Peer side
    read_buffer_size: int = 512
    scenario_timeout_sec: Optional[float] = None  # None = wait forever

    # Logging
    project_root: Path = Path(__file__).parent.parent
    log_dir: Path = project_root / "logs"
    log_level: str = "WARNING"
    log_to_file: bool = False


settings = Settings()
