from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


# ============================================================================
# ENUMS
# ============================================================================

class Nation(str, enum.Enum):
    """Market segment; each one is scored as an independent population"""
    DOMESTIC = "domestic"
    EXPORT = "export"


class ETLStatus(str, enum.Enum):
    """ETL run status"""
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
