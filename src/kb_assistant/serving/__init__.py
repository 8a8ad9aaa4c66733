"""
Serving — FastAPI application exposing ingestion and question answering.

Run locally with ``uvicorn kb_assistant.serving.app:app``.
"""
