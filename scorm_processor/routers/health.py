"""
Health Check Router

Provides health check endpoints for monitoring application status.
"""

from fastapi import APIRouter, Depends, HTTPException
from scorm_processor.models.scorm import HealthCheckResponse
from scorm_processor.utils.feature_flags import feature_flags
from scorm_processor.utils.validation import get_validation_status
import time
import os
import sys
from datetime import datetime

# Initialize router
router = APIRouter()

# Application start time for uptime calculation
_start_time = time.time()

@router.get("/health", response_model=HealthCheckResponse, summary="Basic Health Check")
async def health_check():
    """
    Basic health check endpoint

    Returns application status, version, and environment information.
    This endpoint is used by load balancers and monitoring systems.
    """
    uptime = time.time() - _start_time

    return HealthCheckResponse(
        status="healthy",
        version=os.getenv("APP_VERSION", "1.0.0"),
        environment=os.getenv("ENVIRONMENT", "development"),
        timestamp=datetime.utcnow(),
        uptime=uptime
    )

@router.get("/health/detailed", summary="Detailed Health Check")
async def detailed_health_check(validation_status: dict = Depends(get_validation_status)):
    """
    Detailed health check with dependency validation

    Checks application components including:
    - Upload validation and supported SCORM versions
    - Feature flags for the current environment
    """
    uptime = time.time() - _start_time

    is_healthy = (
        validation_status["validation_working"] and
        len(validation_status["supported_versions"]) > 0
    )

    return {
        "status": "healthy" if is_healthy else "degraded",
        "version": os.getenv("APP_VERSION", "1.0.0"),
        "environment": os.getenv("ENVIRONMENT", "development"),
        "timestamp": datetime.utcnow().isoformat(),
        "uptime": uptime,
        "components": {
            "validation": validation_status,
            "feature_flags": feature_flags.get_environment_info()
        },
        "details": {
            "cors_origins": os.getenv("CORS_ORIGINS", "http://localhost:3000").split(","),
            "python_version": sys.version,
            "startup_time": datetime.fromtimestamp(_start_time).isoformat()
        }
    }

@router.get("/health/ready", summary="Readiness Check")
async def readiness_check():
    """
    Kubernetes-style readiness probe

    Returns 200 if the application is ready to serve requests,
    503 if the manifest parser is not usable.
    """
    try:
        from scorm_processor.services.manifest_xml import parse_xml
        root = parse_xml("<manifest identifier='ready'/>")

        if root.tag != "manifest":
            raise RuntimeError("Manifest parser not operational")

        return {"status": "ready", "timestamp": datetime.utcnow().isoformat()}

    except Exception as e:
        raise HTTPException(
            status_code=503,
            detail=f"Application not ready: {str(e)}"
        )

@router.get("/health/live", summary="Liveness Check")
async def liveness_check():
    """
    Kubernetes-style liveness probe

    Returns 200 if the application is alive and responding,
    should rarely fail unless the application is completely broken.
    """
    return {
        "status": "alive",
        "timestamp": datetime.utcnow().isoformat(),
        "pid": os.getpid()
    }
