from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from app.api.v1 import (
    artifacts,
    file_upload,
    folder,
    links,
    maintenance,
    project_router,
    public_uploads,
)
from app.core.database import engine, Base
from app.core.exceptions import StorageError
import logging
import time
from fastapi.middleware.cors import CORSMiddleware


# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="SlateDrop Storage API", version="1.0.0")

# Include routers
app.include_router(project_router.router, prefix="/api/v1/projects", tags=["project"])
app.include_router(artifacts.router, prefix="/api/v1/projects", tags=["artifacts"])
app.include_router(folder.router, prefix="/api/v1/folders", tags=["folders"])
app.include_router(file_upload.router, prefix="/api/v1/files", tags=["file"])
app.include_router(links.router, prefix="/api/v1/links", tags=["request links"])
app.include_router(
    public_uploads.router, prefix="/api/v1/public/uploads", tags=["public uploads"]
)
app.include_router(
    maintenance.router, prefix="/api/v1/maintenance", tags=["maintenance"]
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.on_event("startup")
async def startup_event():
    # Wait for database to be ready and create tables
    max_retries = 30
    retry_count = 0

    while retry_count < max_retries:
        try:
            Base.metadata.create_all(bind=engine)
            logger.info("Database tables created successfully")
            break
        except Exception as e:
            retry_count += 1
            logger.warning(
                f"Database connection attempt {retry_count} failed: {str(e)}"
            )
            if retry_count >= max_retries:
                logger.error("Max retries reached. Could not connect to database.")
                raise e
            time.sleep(2)


@app.get("/")
def read_root():
    return {"message": "SlateDrop Storage API", "version": "1.0.0"}


@app.get("/health")
def health_check():
    try:
        # Check database connection
        from sqlalchemy import text

        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        raise HTTPException(status_code=503, detail=f"Database unhealthy: {str(e)}")
