"""Class Attendance package.

This package is organized by feature modules (roster, sessions, attendance,
summaries, bulk, ...) with a thin Flask API layer and service/repository layers.
"""
