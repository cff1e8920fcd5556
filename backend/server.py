from fastapi import FastAPI, APIRouter, Depends
from dotenv import load_dotenv
from starlette.middleware.cors import CORSMiddleware
import os
import logging
from pathlib import Path

# Load env before other imports
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

from soundpack import __version__
from soundpack.config import SoundpackConfig
from soundpack_api import get_config, soundpack_router

# Create the main app
app = FastAPI(title="Soundpack API", version=__version__)

# Create a router with the /api prefix
api_router = APIRouter(prefix="/api")

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ============== Health Check ==============

@api_router.get("/")
async def root():
    return {"message": "Soundpack API", "version": __version__}

@api_router.get("/health")
async def health_check(config: SoundpackConfig = Depends(get_config)):
    return {
        "status": "healthy",
        "soundpacks_root": str(config.soundpacks_root),
        "supported_audio_extensions": sorted(config.supported_audio_extensions),
    }

# Include the routers
app.include_router(api_router)
app.include_router(soundpack_router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=os.environ.get('CORS_ORIGINS', '*').split(','),
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.on_event("startup")
async def log_config():
    config = get_config()
    logger.info(f"Soundpacks root: {config.soundpacks_root}, db: {config.db_path}")
