import os

import uvicorn
from dotenv import load_dotenv

# HOST, PORT and ENV may come from .env
load_dotenv()

if __name__ == "__main__":
    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", 8000))

    # Disable reload in production
    reload = os.getenv("ENV") == "development"

    uvicorn.run(
        "rentledger.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
        workers=1,  # Subscriptions live in-process
    )
