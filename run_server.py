import os

import uvicorn

if __name__ == "__main__":
    port = int(os.environ.get("PORT", "3000"))

    print("Starting Farmap API Server...")
    print(f"Docs available at: http://localhost:{port}/docs")

    uvicorn.run(
        "farmap.api.server:app",
        host="0.0.0.0",
        port=port,
    )
