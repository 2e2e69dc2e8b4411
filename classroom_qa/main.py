from fastapi import FastAPI, WebSocket, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
import logging

from .config import CORS_ORIGINS
from .database import SessionLocal, init_db
from .deps import user_from_token
from .validation import ValidationError
from .ws_manager import manager
from . import accounts, questions, reviews, messages, admin, moderation

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="Classroom Q&A",
    description="Classroom questions, answers, reviews and direct messages with real-time updates",
    version="1.0.0"
)

# CORS middleware - allow frontend to communicate
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(accounts.router)
app.include_router(questions.router)
app.include_router(reviews.router)
app.include_router(messages.router)
app.include_router(admin.router)
app.include_router(moderation.router)

# Startup event - create tables
@app.on_event("startup")
async def startup():
    init_db()
    logger.info("Database tables created successfully")

# ==================== Error Handlers ====================

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.info(f"Rejected input on {request.url.path}: {exc.message}")
    content = {"detail": exc.message}
    if exc.index is not None:
        content["index"] = exc.index
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=content)

@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )

# ==================== WebSocket Endpoint ====================

@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: Optional[str] = None):
    """
    WebSocket endpoint for real-time updates.
    - Sends new questions, answers and question updates to all connected clients
    - Sends direct messages to their recipients when connected with a token
    """
    db = SessionLocal()
    try:
        user = user_from_token(token, db)
        user_id = user.user_id if user and not user.is_banned else None
    finally:
        db.close()

    await manager.connect(websocket, user_id)
    logger.info(f"Client connected to WebSocket (user_id={user_id})")

    try:
        while True:
            # Keep connection alive, receive heartbeats
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text("pong")
    except Exception as e:
        logger.info(f"WebSocket closed: {e}")
        manager.disconnect(websocket)

# ==================== Health Check ====================

@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "Classroom Q&A"}

# ==================== API Documentation ====================

@app.get("/", tags=["Info"])
def root():
    """API information"""
    return {
        "name": "Classroom Q&A API",
        "version": "1.0.0",
        "docs": "/docs",
        "endpoints": {
            "auth": ["/register", "/login", "/me", "/users"],
            "questions": ["/questions", "/questions/trusted", "/questions/{id}", "/questions/{id}/vote",
                          "/questions/{id}/answers"],
            "answers": ["/answers/{id}", "/answers/{id}/vote", "/answers/{id}/correct", "/answers/{id}/reviews"],
            "reviews": ["/reviews/mine", "/reviews/{id}", "/reviews/{id}/vote", "/trusted-reviewers",
                        "/reviewers/ranking"],
            "messages": ["/chats", "/chats/{id}/messages", "/chats/{id}/read", "/chats/{id}/unread",
                         "/messages/search"],
            "admin": ["/admin/invitations", "/admin/users", "/admin/reset", "/instructor/reviewers/{username}"],
            "staff": ["/staff/users", "/staff/questions/{id}/sensitivity", "/staff/answers/{id}/sensitivity"],
            "websocket": ["/ws"],
            "health": ["/health"]
        }
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
