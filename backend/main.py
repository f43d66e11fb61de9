"""
School Dash — student attendance and school statistics over Google Sheets.
FastAPI backend entry point.
"""

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load environment before route modules read their settings
load_dotenv()

from core.sheets import accessor_from_env  # noqa: E402
from routes.student import router as student_router  # noqa: E402
from routes.school import router as school_router  # noqa: E402
from routes.enriched import router as enriched_router  # noqa: E402
from routes.debug import router as debug_router  # noqa: E402

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
log = logging.getLogger("school_dash")

# Comma-separated allowed origins, e.g. http://localhost:3000,https://dash.example.com
raw_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")
ALLOWED_ORIGINS = [o.strip() for o in raw_origins.split(",") if o.strip()]

app = FastAPI(
    title="School Dash API",
    description=(
        "Read-only student attendance and school statistics computed from a "
        "Google Spreadsheet with a Mapping sheet and one sheet per test."
    ),
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def init_accessor():
    """Build the spreadsheet accessor; the API still starts if this fails."""
    try:
        return accessor_from_env()
    except Exception as exc:
        log.error("Failed to initialize Google Sheets API: %s", exc)
        log.warning("Server will start but API endpoints will return errors. "
                    "Check your .env file configuration.")
        return None


app.state.accessor = init_accessor()

# Register route modules
app.include_router(student_router, prefix="/api/student", tags=["Student"])
app.include_router(school_router, prefix="/api/school", tags=["School"])
app.include_router(enriched_router, prefix="/api/test", tags=["Tests"])
app.include_router(debug_router, prefix="/api/debug", tags=["Debug"])


@app.get("/")
async def root():
    """API information."""
    return {
        "name": "School Dash API",
        "version": "1.0.0",
        "status": "running",
        "endpoints": {
            "health": "/health",
            "student": {
                "tests": "/api/student/tests?studentId=STUDENT_ID&schoolId=SCHOOL_ID (schoolId optional)",
                "testDetails": "/api/student/test-details?studentId=STUDENT_ID&testName=TEST_NAME",
            },
            "school": {
                "stats": "/api/school/stats?schoolId=SCHOOL_ID",
            },
            "test": {
                "enriched": "/api/test/enriched?testName=TEST_NAME",
                "export": "/api/test/enriched/export?testName=TEST_NAME",
            },
        },
    }


@app.get("/health")
async def health_check():
    return {
        "status": "ok",
        "sheets_initialized": app.state.accessor is not None,
    }
