import os
from dotenv import load_dotenv

# Load Environment Variables from the working directory .env (if any)
load_dotenv()


class Settings:
    # ═══════════════════════════════════════════════════════════════════
    # PROCESS-LEVEL KNOBS
    # ═══════════════════════════════════════════════════════════════════
    # Network identity (program ids, RPC endpoint) lives in NetworkConfig,
    # which is injected per client. Only logging behaviour is global.

    # Console output off by default: this is a library, callers opt in.
    SILENT_MODE = os.getenv("AMM_SILENT_MODE", "1").lower() in ("1", "true", "yes")

    # File logging is disabled unless a directory is configured.
    LOG_DIR = os.getenv("AMM_LOG_DIR", "")
    LOG_LEVEL = os.getenv("AMM_LOG_LEVEL", "INFO").upper()
    LOG_MAX_BYTES = 5 * 1024 * 1024
    LOG_BACKUP_COUNT = 3
