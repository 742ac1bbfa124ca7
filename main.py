import os

import uvicorn

from api.app import app


if __name__ == "__main__":
    uvicorn.run(
        app,
        host=os.environ.get("STUDY_HOST", "127.0.0.1"),
        port=int(os.environ.get("STUDY_PORT", "8000")),
    )
