"""Run the Memsync service under uvicorn."""

import os

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "server.main:app",
        host=os.environ.get("MEMSYNC_BIND_HOST", "0.0.0.0"),
        port=int(os.environ.get("MEMSYNC_PORT", "8000")),
        reload=os.environ.get("MEMSYNC_DEV", "0") == "1",
    )
