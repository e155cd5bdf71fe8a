"""
Web interface module for Rally.

Provides FastAPI-based web server for:
- Match proposals (basic scorer and enhanced engine)
- Creating and advancing tournament brackets
- League schedules and rating updates
"""
