"""Services layer for the intelligence pipeline."""

from .analyzer import MeetingAnalyzer
from .fathom import FathomClient, import_fathom_meetings, process_fathom_payload
from .ingestion import process_intelligence_data

__all__ = [
    "FathomClient",
    "MeetingAnalyzer",
    "import_fathom_meetings",
    "process_fathom_payload",
    "process_intelligence_data",
]
