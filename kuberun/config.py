from pydantic_settings import BaseSettings
from functools import lru_cache

class Settings(BaseSettings):
    # Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = "INFO"

    # ==========================================================================
    # Resource Naming
    # ==========================================================================
    # Every namespace/job/container created by a run is named
    # "{resource_prefix}-{kind}-{suffix}", e.g. "kuberun-job-k3x8n"
    resource_prefix: str = "kuberun"
    name_suffix_length: int = 5  # nanoid suffix, lowercase alphanumeric

    # Value of the app.kubernetes.io/managed-by label on created resources
    managed_by_label: str = "kuberun"

    # ==========================================================================
    # Execution
    # ==========================================================================
    # Seconds to wait for the job to complete (0 = wait indefinitely)
    default_timeout_seconds: int = 120

    # Server-side timeout for a single watch request. The job watch is reopened
    # after each window, and a stopped watch exits within one window.
    watch_window_seconds: int = 30

    # ==========================================================================
    # Cluster Credentials
    # ==========================================================================
    # Empty means: $KUBECONFIG, then ~/.kube/config, then in-cluster config
    kubeconfig: str = ""
    kube_context: str = ""

    class Config:
        env_prefix = "KUBERUN_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields from .env file
        case_sensitive = False  # Allow lowercase env vars to match uppercase field names

@lru_cache()
def get_settings():
    return Settings()
