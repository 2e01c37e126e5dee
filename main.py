"""Main application file - Machine Efficiency Dashboard"""
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.staticfiles import StaticFiles

from config import app_config

# Import routers
from web_routes import router as web_router
from api_routes import router as api_router

BASE_DIR = Path(__file__).resolve().parent

# Initialize FastAPI app
app = FastAPI(title="Machine Efficiency Dashboard", version="1.0.0")

# Mount static files
app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")

# Signed cookie session; no server-side session store
app.add_middleware(
    SessionMiddleware,
    secret_key=app_config.session_secret,
    session_cookie=app_config.session_key,
    same_site="lax",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[], #add your allowed origins here
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(web_router, tags=["web"])
app.include_router(api_router, tags=["api"])

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=False,
        log_level="info"
    )
