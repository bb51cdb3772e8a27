from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # Annotation source (Supabase / PostgREST)
    SUPABASE_URL: str = "YOUR_SUPABASE_PROJECT_URL_HERE"
    SUPABASE_ANON_KEY: str = "YOUR_SUPABASE_ANON_KEY_HERE"
    ANNOTATION_TIMEOUT_SECONDS: float = 10.0
    
    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./hikepal.db"
    
    # Simulation
    TICK_INTERVAL_SECONDS: float = 1.0
    USER_START_LAT: float = 22.2225
    USER_START_LNG: float = 114.2415
    
    # Track summaries: "approximate" (v1) or "haversine" (v2)
    DISTANCE_METHOD: str = "approximate"
    
    # Team chat relay
    TEAM_WEBHOOK_URL: str = ""
    
    # Emergency
    EMERGENCY_NUMBER: str = "999"
    
    class Config:
        env_file = ".env"

settings = Settings()
