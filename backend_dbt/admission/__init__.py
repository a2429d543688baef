"""
Vote admission path around the scoring engine.

Duplicate detection belongs to the vote store; enforcement of REJECT verdicts
follows DbtSettings.enforce_reject.
"""

from backend_dbt.admission.service import AdmissionResult, VoteAdmission, VoteRequest

__all__ = ["AdmissionResult", "VoteAdmission", "VoteRequest"]
