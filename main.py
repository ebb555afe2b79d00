import uvicorn

from wallet_login.core.config import settings
from wallet_login.server import create_app

# Define the FastAPI application instance
app = create_app(settings)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
