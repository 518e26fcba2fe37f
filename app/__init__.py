"""
App package — state store, user workflows and the Streamlit dashboard.
"""

from .state import AppState, Notice
from .workflows import CloneResult, FinanceWorkflows, create_app

__all__ = ["AppState", "Notice", "CloneResult", "FinanceWorkflows", "create_app"]
