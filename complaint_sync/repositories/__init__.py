"""Repository modules - REST data access"""
from .complaint_api import ComplaintApiClient, extract_complaint_list, extract_complaint_record

__all__ = [
    "ComplaintApiClient",
    "extract_complaint_list",
    "extract_complaint_record",
]
