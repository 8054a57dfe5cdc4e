"""
Application configuration.
All settings are loaded from environment variables.
Use env.example as a reference for required variables.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    IMPORTANT: Secrets have no defaults - they MUST be set in .env file.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # CORS: через запятую (например http://localhost:3000,https://studio.example.com). Пусто = дефолтный список в коде.
    cors_origins: str = ""
    # Trusted proxy IPs (comma-separated). Used for X-Forwarded-For in production.
    trusted_proxy_ips: str = ""

    # ===========================================
    # DATABASE (PostgreSQL)
    # ===========================================
    database_url: str  # Required, no default
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_connect_timeout: int = 5

    # ===========================================
    # REDIS (circuit breaker state, readiness)
    # ===========================================
    redis_url: str  # Required, no default

    # ===========================================
    # IDENTITY SERVICE (bearer token -> user id)
    # ===========================================
    identity_service_url: str  # Required, no default
    identity_user_path: str = "/auth/v1/user"
    identity_api_key: str = ""  # Optional, sent as "apikey" header
    identity_timeout: float = 10.0

    # ===========================================
    # ARTIFACT STORAGE
    # ===========================================
    artifact_backend: str = "local"  # local, supabase
    artifact_base_path: str = "/data/studio_artifacts"
    # Куда указывают подписанные ссылки local-бэкенда (роут /api/studio/artifacts)
    artifact_public_base_url: str = "http://localhost:8000/api/studio/artifacts"
    artifact_bucket: str = "studio"
    artifact_service_url: str = ""  # supabase: https://<project>.supabase.co
    artifact_service_key: str = ""  # supabase: service role key
    artifact_timeout: float = 30.0
    artifact_url_ttl_seconds: int = 600  # 10 minutes
    artifact_signing_secret: str  # Required, no default

    # ===========================================
    # PACKETS
    # ===========================================
    # Жёсткий бюджет на весь запрос (auth -> build -> upload -> sign), не на отдельный вызов
    packet_hard_timeout_seconds: float = 55.0
    # запись аудита при отказе best-effort: ответ не ждёт её дольше этого
    packet_audit_timeout_seconds: float = 5.0
    packet_min_archive_bytes: int = 50
    packet_min_document_bytes: int = 100
    packet_default_tier: str = "producer"
    packet_default_mode: str = "full"
    packet_modes: str = "full,preview"
    packet_brand: str = "Manyagi Studios"

    # ===========================================
    # OVERRIDE TOKENS
    # ===========================================
    override_token_secret: str  # Required, no default
    override_token_max_ttl_seconds: int = 30 * 24 * 3600

    # ===========================================
    # CIRCUIT BREAKER
    # ===========================================
    cb_backend: str = "redis"  # redis, memory
    cb_failure_threshold: int = 5
    cb_open_seconds: int = 30

    # ===========================================
    # LOGGING
    # ===========================================
    request_id_header: str = "X-Request-Id"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("packet_modes")
    @classmethod
    def parse_modes(cls, v: str) -> str:
        """Validate modes format."""
        # Store as comma-separated string, parse when needed
        return v.lower().strip()

    @property
    def packet_modes_set(self) -> set[str]:
        """Get allowed rendering modes as a set."""
        return {m.strip() for m in self.packet_modes.split(",") if m.strip()}

    @property
    def trusted_proxy_ips_set(self) -> set[str]:
        """Get trusted proxy IPs as a set."""
        return {ip.strip() for ip in self.trusted_proxy_ips.split(",") if ip.strip()}

    @field_validator("artifact_signing_secret", "override_token_secret")
    @classmethod
    def validate_secret(cls, v: str) -> str:
        """Ensure signing secrets are reasonably secure."""
        if len(v) < 16:
            raise ValueError("signing secrets must be at least 16 characters")
        if v in ("changeme", "secret", "password", "admin"):
            raise ValueError("signing secret is too weak, please change it")
        return v

    @field_validator("artifact_backend")
    @classmethod
    def validate_artifact_backend(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in ("local", "supabase"):
            raise ValueError("artifact_backend must be one of: local, supabase")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Игнорировать неизвестные поля из .env


settings = Settings()
