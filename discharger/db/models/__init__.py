from discharger.db.models.user_profile import UserProfile
from discharger.db.models.hospital import Hospital
from discharger.db.models.patient import Patient
from discharger.db.models.document import Document
from discharger.db.models.snippet import Snippet
from discharger.db.models.patient_summary import PatientSummary
from discharger.db.models.summary_translation import SummaryTranslation
from discharger.db.models.patient_access_key import PatientAccessKey

__all__ = [
    "UserProfile",
    "Hospital",
    "Patient",
    "Document",
    "Snippet",
    "PatientSummary",
    "SummaryTranslation",
    "PatientAccessKey",
]
