from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # API configuration
    api_version: str = "1.0"
    log_level: str = "INFO"

    # External services (OpenStreetMap Overpass for POIs, OSRM for routing)
    overpass_url: str = "https://overpass-api.de/api/interpreter"
    osrm_url: str = "https://router.project-osrm.org"
    http_timeout_s: float = 10.0
    user_agent: str = "tourguide/1.0"

    # Nearby search
    poi_radius_m: int = 1500
    summary_limit: int = 5
    default_category: str = "restaurant"

    # Routing
    default_mode: str = "walking"

    # Location acquisition
    location_timeout_s: float = 10.0

    # Map view
    initial_zoom: int = 14
    follow_zoom: int = 15
    fit_padding_px: int = 30

    # Sessions
    session_idle_timeout_s: float = 3600.0

    model_config = SettingsConfigDict(
        env_prefix="TOURGUIDE_", env_file=".env", extra="ignore"
    )


settings = Settings()
