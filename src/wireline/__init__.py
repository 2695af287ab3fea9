"""Admin backend for the Wireline inventory user base.

Serve with ``uvicorn wireline.api:app``; run the scheduler with
``celery -A wireline.worker.celery_app worker --beat``.
"""
