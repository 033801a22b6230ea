from fastapi import FastAPI
from fastapi.middleware import Middleware
from fastapi.middleware.cors import CORSMiddleware

from api.v1.auth import router as auth_router
from api.v1.health import router as health_router
from api.v1.plants import router as plants_router
from api.v1.users import router as users_router
from core.logger import app_logger

from init_db import close_db, init_db

middleware = [
    Middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
]

app = FastAPI(
    title="Plant Care Backend",
    middleware=middleware
)


@app.on_event("startup")
async def startup():
    await init_db()
    app_logger.info("Database ready")


@app.on_event("shutdown")
async def shutdown():
    await close_db()


app.include_router(health_router)
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(plants_router)
