"""Configuration management for loan-sync."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loan_sync.exceptions import ConfigurationError


@dataclass
class StorageConfig:
    """Local persisted state configuration."""

    path: Path = field(default_factory=lambda: Path("loan_sync_state.json"))
    key: str = "clients"


@dataclass
class KafkaSyncConfig:
    """Realtime mirror configuration (compacted Kafka topic)."""

    bootstrap_servers: str = "localhost:9092"
    topic: str = "loan-sync.records"
    group_id: str = "loan-sync-device"
    client_id: str = "loan-sync"
    acks: str = "all"
    auto_offset_reset: str = "earliest"
    poll_timeout: float = 0.5

    def validate(self) -> None:
        """Check required settings.

        Raises
        ------
        ConfigurationError
            If a required setting is empty or out of range.
        """
        if not self.bootstrap_servers.strip():
            raise ConfigurationError("bootstrap_servers must not be empty")
        if not self.topic.strip():
            raise ConfigurationError("topic must not be empty")
        if not self.group_id.strip():
            raise ConfigurationError("group_id must not be empty")
        if self.poll_timeout < 0:
            raise ConfigurationError("poll_timeout must be >= 0")

    def to_producer_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka producer config dict."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "client.id": self.client_id,
            "acks": self.acks,
        }

    def to_consumer_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka consumer config dict.

        Offsets are never committed: every device rebuilds the full snapshot
        from the start of the compacted topic. End-of-partition events tell
        the adapter when the rebuild is complete.
        """
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "client.id": self.client_id,
            "group.id": self.group_id,
            "auto.offset.reset": self.auto_offset_reset,
            "enable.auto.commit": False,
            "enable.partition.eof": True,
        }


@dataclass
class ShareConfig:
    """Share link configuration."""

    base_url: str = "https://loans.example.com/"
    param: str = "data"
    max_payload_chars: int = 8000


@dataclass
class AlertConfig:
    """Notification configuration."""

    warning_days: int = 1


@dataclass
class LoanSyncConfig:
    """Main configuration for loan-sync."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    kafka: KafkaSyncConfig = field(default_factory=KafkaSyncConfig)
    share: ShareConfig = field(default_factory=ShareConfig)
    alerts: AlertConfig = field(default_factory=AlertConfig)
    cloud_enabled: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "LoanSyncConfig":
        """Create config from environment variables."""
        import os

        storage = StorageConfig(
            path=Path(os.getenv("LOAN_SYNC_STATE_PATH", "loan_sync_state.json")),
            key=os.getenv("LOAN_SYNC_STATE_KEY", "clients"),
        )

        kafka = KafkaSyncConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            topic=os.getenv("LOAN_SYNC_TOPIC", "loan-sync.records"),
            group_id=os.getenv("LOAN_SYNC_GROUP_ID", "loan-sync-device"),
        )

        share = ShareConfig(
            base_url=os.getenv("SHARE_BASE_URL", "https://loans.example.com/"),
            max_payload_chars=int(os.getenv("SHARE_MAX_PAYLOAD_CHARS", "8000")),
        )

        alerts = AlertConfig(warning_days=int(os.getenv("WARNING_DAYS", "1")))

        return cls(
            storage=storage,
            kafka=kafka,
            share=share,
            alerts=alerts,
            cloud_enabled=os.getenv("CLOUD_ENABLED", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
