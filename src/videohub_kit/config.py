from pydantic import BaseModel, Field
import yaml, pathlib

class VideohubConfig(BaseModel):
    host: str = Field(..., description="Videohub IP/hostname")
    port: int = Field(9990, description="Videohub Ethernet Protocol TCP port")
    timeout_s: float = Field(5.0, gt=0, description="Connect timeout (s)")
    reconnect_attempts: int = Field(3, ge=1, description="Connection tries per reconnect")
    reconnect_backoff_s: float = Field(0.5, ge=0, description="First wait between tries; doubles each time")

class AppConfig(BaseModel):
    videohub: VideohubConfig
    log_level: str = Field("INFO")

def load_config(path: str) -> AppConfig:
    data = yaml.safe_load(pathlib.Path(path).read_text())
    return AppConfig.model_validate(data)
