import os

from pydantic_settings import BaseSettings, SettingsConfigDict


def _csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """
    Job Intake settings, read from the environment and an optional .env file.
    """

    # Service settings
    service_name: str = os.getenv("SERVICE_NAME", "job_intake")
    environment: str = os.getenv("ENVIRONMENT", "development")
    debug: bool = os.getenv("DEBUG", "True").lower() == "true"

    # Logging settings
    log_level: str = os.getenv("LOG_LEVEL", "DEBUG")
    syslog_host: str = os.getenv("SYSLOG_HOST", "172.17.0.1")
    syslog_port: int = int(os.getenv("SYSLOG_PORT", "5141"))
    json_logs: bool = os.getenv("JSON_LOGS", "True").lower() == "true"
    enable_logstash: bool = os.getenv("ENABLE_LOGSTASH", "False").lower() == "true"

    # MongoDB settings
    mongodb: str = os.getenv("MONGODB", "mongodb://localhost:27017")
    mongodb_database: str = os.getenv("MONGODB_DATABASE", "job_portal")

    # Pool and timeouts, passed straight to the motor client
    mongo_max_pool_size: int = int(os.getenv("MONGO_MAX_POOL_SIZE", "100"))
    mongo_min_pool_size: int = int(os.getenv("MONGO_MIN_POOL_SIZE", "10"))
    mongo_max_idle_time_ms: int = int(os.getenv("MONGO_MAX_IDLE_TIME_MS", "30000"))
    mongo_connect_timeout_ms: int = int(os.getenv("MONGO_CONNECT_TIMEOUT_MS", "5000"))
    mongo_server_selection_timeout_ms: int = int(os.getenv("MONGO_SERVER_SELECTION_TIMEOUT_MS", "5000"))
    mongo_socket_timeout_ms: int = int(os.getenv("MONGO_SOCKET_TIMEOUT_MS", "30000"))

    # Collections; jobs and users are owned by other services and only read here
    applications_collection: str = os.getenv("APPLICATIONS_COLLECTION", "applications")
    jobs_collection: str = os.getenv("JOBS_COLLECTION", "jobs")
    users_collection: str = os.getenv("USERS_COLLECTION", "users")

    # Resume storage settings
    resume_bucket_name: str = os.getenv("RESUME_BUCKET_NAME", "resumes")
    resume_chunk_size_bytes: int = int(os.getenv("RESUME_CHUNK_SIZE_BYTES", str(255 * 1024)))
    upload_read_chunk_bytes: int = int(os.getenv("UPLOAD_READ_CHUNK_BYTES", str(64 * 1024)))
    max_resume_size_bytes: int = int(os.getenv("MAX_RESUME_SIZE_BYTES", str(10 * 1024 * 1024)))
    # Comma separated; empty accepts any content type
    allowed_resume_content_types: str = os.getenv(
        "ALLOWED_RESUME_CONTENT_TYPES",
        "application/pdf,"
        "application/msword,"
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document,"
        "application/rtf,"
        "text/plain",
    )

    @property
    def resume_content_types(self) -> list[str]:
        """Allowed resume content types, lower-cased."""
        return [item.lower() for item in _csv(self.allowed_resume_content_types)]

    # Authentication settings
    secret_key: str = os.getenv("SECRET_KEY", "your-secret-key-here")
    algorithm: str = os.getenv("ALGORITHM", "HS256")

    # Metrics settings
    metrics_enabled: bool = os.getenv("METRICS_ENABLED", "True").lower() == "true"

    @property
    def mongo_client_options(self) -> dict:
        """Keyword arguments for ``AsyncIOMotorClient``."""
        return {
            "maxPoolSize": self.mongo_max_pool_size,
            "minPoolSize": self.mongo_min_pool_size,
            "maxIdleTimeMS": self.mongo_max_idle_time_ms,
            "connectTimeoutMS": self.mongo_connect_timeout_ms,
            "serverSelectionTimeoutMS": self.mongo_server_selection_timeout_ms,
            "socketTimeoutMS": self.mongo_socket_timeout_ms,
        }

    @property
    def logging_config(self) -> dict:
        """
        Sink options for ``job_intake.log.logging``. Development always logs
        plain text; the syslog target is only set when logstash is enabled.
        """
        development = self.environment == "development"
        if development:
            level = "DEBUG" if self.debug else "INFO"
        else:
            level = self.log_level
        return {
            "app_name": self.service_name,
            "log_level": level,
            "json_logs": self.json_logs and not development,
            "enable_logstash": self.enable_logstash,
            "syslog_host": self.enable_logstash and self.syslog_host or None,
            "syslog_port": self.enable_logstash and self.syslog_port or None,
        }

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
