"""
FastAPI endpoints for the shipment report service.
Proxies SQL commands to the AppSynergy query API and builds shipment reports.
"""

import logging
import os
from typing import Any, Dict, Optional

import requests
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from utils.appsynergy_api import (
    DEFAULT_ACTION,
    QueryAPIError,
    fetch_declaration_rows,
    forward_query,
    list_declarations,
)
from utils.report_builder import ReportBuildError, build_report
from utils.report_table import (
    apply_cell_overrides,
    build_line_items_frame,
    build_packaging_frame,
    report_filename,
)

# Load environment variables
load_dotenv()

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

# Make sure other loggers are also set to INFO level
logging.getLogger('utils.appsynergy_api').setLevel(logging.INFO)
logging.getLogger('utils.report_builder').setLevel(logging.INFO)

DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://localhost:5176"

# Create FastAPI app
app = FastAPI(
    title="Shipment Report API",
    description="Query proxy and shipment report endpoints",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.environ.get('CORS_ORIGINS', DEFAULT_CORS_ORIGINS).split(',') if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class QueryRequest(BaseModel):
    sqlCmd: str
    responseFormat: str = "JSON"


class ReportRequest(BaseModel):
    declaration: Optional[Dict[str, Any]] = None
    editedCells: Dict[str, Dict[str, Any]] = {}


@app.get("/")
async def root():
    """Health check endpoint"""
    return {"message": "Shipment Report API is running", "status": "healthy"}


@app.get("/api/health")
async def health_check():
    """Detailed health check with configuration status"""
    return {
        "status": "healthy",
        "environment": {
            "api_key": bool(os.environ.get('APPSYNERGY_API_KEY')),
            "visa_sql_cmd": bool(os.environ.get('VISA_SQL_CMD'))
        },
        "endpoints": {
            "proxy": "/api",
            "declarations": "/api/declarations",
            "report": "/api/report",
            "health": "/api/health"
        }
    }


@app.post("/api")
def proxy_query(
    request: QueryRequest,
    action: str = Query(DEFAULT_ACTION, description="Query API action"),
    apiKey: Optional[str] = Query(None, description="Query API key")
):
    """
    Forward a SQL command to the query API and return its response unchanged.
    Error responses keep their status and are wrapped with errorMessage and details.
    """
    api_key = apiKey or os.environ.get('APPSYNERGY_API_KEY')
    if not api_key:
        return JSONResponse(
            status_code=400,
            content={"status": "ERROR", "errorMessage": "API Key is required"}
        )

    logger.info("Proxying request to AppSynergy API")
    try:
        status_code, payload = forward_query(
            request.sqlCmd,
            response_format=request.responseFormat,
            action=action,
            api_key=api_key
        )
    except requests.exceptions.RequestException as e:
        logger.error(f"❌ Proxy error: {str(e)}")
        return JSONResponse(
            status_code=500,
            content={"status": "ERROR", "errorMessage": str(e), "details": "Proxy server error"}
        )

    if status_code >= 400:
        logger.error(f"❌ Query API error response ({status_code}): {payload}")
        message = None
        if isinstance(payload, dict):
            message = payload.get('errorMessage') or payload.get('message')
        return JSONResponse(
            status_code=status_code,
            content={
                "status": "ERROR",
                "errorMessage": message or f"Request failed with status code {status_code}",
                "details": payload
            }
        )

    return JSONResponse(status_code=status_code, content=payload)


@app.get("/api/declarations")
def declarations_endpoint():
    """List declarations, newest export first"""
    try:
        declarations = list_declarations()
    except QueryAPIError as e:
        logger.error(f"❌ Failed to fetch declarations: {str(e)}")
        raise HTTPException(status_code=502, detail=str(e))
    except ValueError as e:
        logger.error(f"❌ Configuration error: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

    return {"success": True, "declarations": declarations}


@app.post("/api/report")
def report_endpoint(request: ReportRequest):
    """
    Build the shipment report for the selected declaration.

    On failure the report is left unset and the error message is returned.
    """
    declaration = request.declaration
    if not declaration or not declaration.get('id'):
        raise HTTPException(status_code=400, detail="A declaration with an id is required")

    logger.info(f"🚀 Building report for declaration {declaration.get('id')} (VISA: {declaration.get('visa')})")

    try:
        raw_rows = fetch_declaration_rows(declaration['id'])
        report = build_report(raw_rows, declaration)
    except QueryAPIError as e:
        logger.error(f"❌ Report data fetch failed: {str(e)}")
        return JSONResponse(status_code=502, content={"success": False, "report": None, "errorMessage": str(e)})
    except ReportBuildError as e:
        logger.error(f"❌ Report build failed: {str(e)}")
        return JSONResponse(status_code=422, content={"success": False, "report": None, "errorMessage": str(e)})
    except ValueError as e:
        logger.error(f"❌ Configuration error: {str(e)}")
        return JSONResponse(status_code=500, content={"success": False, "report": None, "errorMessage": str(e)})

    table = build_line_items_frame(report, request.editedCells)

    logger.info("✅ Report built successfully")
    return {
        "success": True,
        "report": report,
        "line_items": apply_cell_overrides(report["line_items"], request.editedCells),
        "table": table.to_dict(orient="records"),
        "packaging_table": build_packaging_frame(report).to_dict(orient="records"),
        "filename": report_filename(report["header"])
    }


if __name__ == "__main__":
    # This allows running the API standalone for testing
    uvicorn.run(app, host="0.0.0.0", port=8001)
