from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Provider defaults (per-user keys override these)
    youtube_api_key: str = ""
    gemini_api_key: str = ""
    youtube_api_base_url: str = "https://www.googleapis.com/youtube/v3"
    wikipedia_base_url: str = "https://en.wikipedia.org"
    wikipedia_user_agent: str = "InterviewIQ/1.0"

    # Models
    name_check_model: str = "gemini-2.0-flash"
    video_watch_model: str = "gemini-2.0-flash"
    synthesis_model: str = "gemini-2.5-flash"
    metadata_model: str = "gemini-2.0-flash"
    web_dossier_model: str = "gemini-2.5-flash"
    web_dossier_fallback_model: str = "gemini-2.0-flash"
    question_models: str = "gemini-2.5-flash,gemini-2.0-flash,gemini-2.0-flash-lite"

    # Transcripts
    transcript_languages: str = "en,hi,es,pt,fr,de,ja,ko,ar,ru,zh"
    transcript_min_chars: int = 100
    transcript_max_chars: int = 15000
    transcript_fetch_delay_seconds: float = 0.1

    # Model watch (videos without transcripts)
    model_watch_timeout_seconds: float = 30.0
    model_watch_min_chars: int = 100
    model_watch_delay_free_seconds: float = 1.5
    model_watch_delay_pro_seconds: float = 1.0

    # Synthesis
    synthesis_max_attempts: int = 3
    synthesis_backoff_seconds: float = 5.0
    metadata_max_videos: int = 80

    # Encyclopedia
    wikipedia_article_char_cap: int = 15000
    wikipedia_min_article_chars: int = 500

    # Question generation
    question_research_char_budget: int = 50000
    question_attempts_per_model: int = 2
    question_rate_limit_cooldown_seconds: float = 20.0

    # Progress stream
    progress_buffer_size: int = 256

    # Auth
    jwt_secret: str = "interviewiq-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiry_days: int = 30
    users_file: str = "data/users.json"

    # App
    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = "logs"
    log_retention_days: int = 7

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]

    @property
    def question_model_list(self) -> list[str]:
        return [m.strip() for m in self.question_models.split(",") if m.strip()]

    @property
    def transcript_language_list(self) -> list[str]:
        return [code.strip() for code in self.transcript_languages.split(",") if code.strip()]


settings = Settings()
