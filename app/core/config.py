# Pydantic settings

from pydantic_settings import BaseSettings, SettingsConfigDict
import os


class Settings(BaseSettings):
    """Application settings"""

    # App
    app_name: str = "kafka-event-microservice"
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    # Kafka
    kafka_broker: str = "localhost:9092"
    kafka_client_id: str = "event-microservice"
    kafka_topic: str = "user-activity-events"
    kafka_consumer_group: str = "user-activity-consumer-group"
    kafka_connection_timeout_ms: int = 30000
    kafka_request_timeout_ms: int = 30000
    kafka_retry_backoff_ms: int = 300
    kafka_session_timeout_ms: int = 30000
    kafka_heartbeat_interval_ms: int = 3000

    # Run the consumer loop inside the API process
    consumer_enabled: bool = True

    model_config = SettingsConfigDict(
        # Use .env.local if it exists (for local dev), otherwise .env (for Docker)
        env_file=".env.local" if os.path.exists(".env.local") else ".env",
        case_sensitive=False,
        extra="ignore"
    )


settings = Settings()
