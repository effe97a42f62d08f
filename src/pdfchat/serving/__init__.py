"""
Serving — FastAPI application exposing upload, listing, deletion and
grounded chat over HTTP.

``pdfchat.serving.app:app`` is the ASGI entry point for any ASGI server::

    uvicorn pdfchat.serving.app:app
"""
