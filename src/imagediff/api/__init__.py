"""imagediff - FastAPI HTTP layer.

Modules
-------
main
    FastAPI application with the ``GET /diff`` route and the ``main()`` CLI
    entry point that serves it on a Unix domain socket.
models
    Pydantic response models.
"""
