"""
Relief Grant Backend Application Package

This package contains the FastAPI backend for the disaster-relief grant
program, including:

- main.py: FastAPI application and router wiring
- services/eligibility_engine.py: deterministic eligibility rules
- services/adjudicator.py: AI-assisted final review with rules fallback
- services/application_service.py: submission pipeline and record builder
"""

__version__ = "1.0.0"
