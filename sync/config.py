"""Runtime configuration read from environment variables."""
import os
from dataclasses import dataclass


@dataclass
class SyncConfig:
    """Settings shared by the Lambda entry points."""
    properties_table: str = 'properties'
    reservations_table: str = 'reservations'
    sync_logs_table: str = 'sync_logs'
    log_level: str = 'INFO'
    feed_timeout_seconds: int = 30
    feed_max_retries: int = 3
    sync_lease_seconds: int = 900
    default_guest_name: str = 'Airbnb Reservation'
    sync_log_limit: int = 20
    sync_log_retention_days: int = 90

    @classmethod
    def from_env(cls) -> 'SyncConfig':
        """
        Build configuration from the process environment.

        Returns:
            SyncConfig with defaults for any unset variable
        """
        return cls(
            properties_table=os.environ.get('PROPERTIES_TABLE', 'properties'),
            reservations_table=os.environ.get('RESERVATIONS_TABLE', 'reservations'),
            sync_logs_table=os.environ.get('SYNC_LOGS_TABLE', 'sync_logs'),
            log_level=os.environ.get('LOG_LEVEL', 'INFO'),
            feed_timeout_seconds=int(os.environ.get('FEED_TIMEOUT_SECONDS', '30')),
            feed_max_retries=int(os.environ.get('FEED_MAX_RETRIES', '3')),
            sync_lease_seconds=int(os.environ.get('SYNC_LEASE_SECONDS', '900')),
            default_guest_name=os.environ.get('DEFAULT_GUEST_NAME', 'Airbnb Reservation'),
            sync_log_limit=int(os.environ.get('SYNC_LOG_LIMIT', '20')),
            sync_log_retention_days=int(os.environ.get('SYNC_LOG_RETENTION_DAYS', '90')),
        )
