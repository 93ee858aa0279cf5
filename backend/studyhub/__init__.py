"""Application package for the StudyHub study-group backend.

This package exposes the service, repository and model modules used by
the FastAPI application. The membership and resource rules live in
their own small modules so they can be exercised without a database.
"""
