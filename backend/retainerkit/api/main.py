from fastapi import FastAPI, Request, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from typing import Optional
import os
import logging

from ..database.connection import Database
from ..errors import AppError
from .routes import auth, client_portal, clients, contracts, invoices, work_logs, workspace

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


# PUBLIC_INTERFACE
def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Build the FastAPI application around a persistence handle.

    Args:
        database: Handle to serve requests from; built from the environment when omitted

    Returns:
        FastAPI: Configured application with ``app.state.database`` set
    """
    app = FastAPI(
        title="RetainerKit API",
        description="Multi-tenant client billing portal: contractors track retainer work and invoice their clients.",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {
                "name": "Authentication",
                "description": "Registration, password login and database-backed sessions"
            },
            {
                "name": "Workspace",
                "description": "Active workspace and client scope of the caller"
            },
            {
                "name": "Clients",
                "description": "Client management (contractors only)"
            },
            {
                "name": "Client Members",
                "description": "Attaching registered users to clients (contractors only)"
            },
            {
                "name": "Contracts",
                "description": "Contract management (contractors only)"
            },
            {
                "name": "Work Logs",
                "description": "Time entries against contracts (contractors only)"
            },
            {
                "name": "Invoices",
                "description": "Invoice management and generation from work logs (contractors only)"
            },
            {
                "name": "Client Portal",
                "description": "Read-only contracts and invoices for client users"
            }
        ]
    )
    app.state.database = database or Database.from_env()

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=os.getenv("ALLOWED_ORIGINS", "*").split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        """Report domain errors with their own status code."""
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler for unhandled errors."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"}
        )

    # Startup event
    @app.on_event("startup")
    async def startup_event():
        """Create tables on the configured database."""
        logger.info("Starting up RetainerKit API...")
        try:
            app.state.database.create_tables()
            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            raise

    # Shutdown event
    @app.on_event("shutdown")
    async def shutdown_event():
        """Release database connections."""
        logger.info("Shutting down RetainerKit API...")
        app.state.database.dispose()

    @app.get("/health", tags=["Health"])
    def health_check():
        """
        Health check endpoint.

        Returns API status including database connectivity.
        """
        db = app.state.database.session()
        try:
            db.execute(text("SELECT 1")).scalar()
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Service unhealthy - database connection failed"
            )
        finally:
            db.close()

        return {
            "status": "healthy",
            "version": API_VERSION,
            "database": "connected",
        }

    # Include routers
    app.include_router(auth.router, prefix="/api/v1")
    app.include_router(workspace.router, prefix="/api/v1")
    app.include_router(clients.router, prefix="/api/v1")
    app.include_router(clients.members_router, prefix="/api/v1")
    app.include_router(contracts.router, prefix="/api/v1")
    app.include_router(work_logs.router, prefix="/api/v1")
    app.include_router(invoices.router, prefix="/api/v1")
    app.include_router(client_portal.router, prefix="/api/v1")

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        create_app(),
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )
