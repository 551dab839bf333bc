#!/usr/bin/env python3
"""
Prompt Optimizer Server Runner
Starts the FastAPI application on configured port
"""
import uvicorn

from shared_settings import get_settings

if __name__ == "__main__":
    settings = get_settings()
    workers = settings.workers

    # Development mode (reload) only works with 1 worker
    if settings.reload:
        workers = 1
        print(f"⚠️  Running in DEVELOPMENT mode (reload enabled, 1 worker)")
    else:
        print(f"🏭 Running in PRODUCTION mode ({workers} workers)")
        if workers > 1:
            print("ℹ️  Rate limits and metrics are kept per worker process")

    print(f"🚀 Starting Prompt Optimizer Server")
    print(f"📍 Host: {settings.host}")
    print(f"🔌 Port: {settings.port}")
    print(f"👷 Workers: {workers}")
    print(f"🌐 URL: http://localhost:{settings.port}")
    print(f"📚 API Docs: http://localhost:{settings.port}/docs")
    print("")

    uvicorn.run(
        "server:app",
        host=settings.host,
        port=settings.port,
        workers=workers,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
        timeout_keep_alive=30,
        limit_concurrency=100,
        backlog=2048
    )
