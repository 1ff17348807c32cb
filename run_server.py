import os

import uvicorn

if __name__ == "__main__":
    host = os.environ.get("HEMISPHERE_HOST", "0.0.0.0")
    port = int(os.environ.get("HEMISPHERE_PORT", "8000"))

    print("Starting Hemisphere API Server...")
    print(f"Docs available at: http://localhost:{port}/docs")

    uvicorn.run(
        "hemisphere.api.server:app",
        host=host,
        port=port,
        reload=True
    )
