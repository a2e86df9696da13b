import uvicorn

if __name__ == "__main__":
    config = uvicorn.Config(
        "onboarding_service.app.main:app",
        host="0.0.0.0",
        port=8001,
        reload=False,
    )
    server = uvicorn.Server(config)
    try:
        server.run()
    except KeyboardInterrupt:
        print("\nShutting down server...")
