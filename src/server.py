import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import os
from fastapi.routing import APIRouter
from src.utils.logging_config import setup_logging
from common import global_config

# Setup logging before anything else
setup_logging()

app = FastAPI(title="Product Designer")

# Storefront origins that embed the designer widget
app.add_middleware(  # type: ignore[call-overload]
    CORSMiddleware,  # type: ignore[arg-type]
    allow_origins=global_config.server.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


# Automatically discover and include all routers
def include_all_routers():
    from src.api.routes import all_routers

    main_router = APIRouter()
    for router in all_routers:
        main_router.include_router(router)

    return main_router


app.include_router(include_all_routers())


if __name__ == "__main__":
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8080)),
        log_config=None,  # Disable uvicorn's logging config
        access_log=True,
    )
