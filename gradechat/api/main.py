# gradechat/api/main.py

import logging
import os
import uuid
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from gradechat.chatbot import settings
from gradechat.chatbot.pipeline import ChatService, build_default_service

log = logging.getLogger("chatbot.api")

ERROR_MESSAGE = "I'm sorry, I encountered an error while processing your request. Please try again."


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = ""
    session_id: Optional[str] = Field(None, alias="sessionId")


# wire names are camelCase: {response, gradeData, ambiguous, sessionId}
class ChatReply(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    response: str
    grade_data: Optional[List[dict]] = Field(None, alias="gradeData")
    ambiguous: bool = False
    session_id: str = Field(..., alias="sessionId")


class Suggestion(BaseModel):
    name: str
    similarity: float


def create_app(service: Optional[ChatService] = None) -> FastAPI:
    app = FastAPI(
        title="GradeChat API",
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    chat = service or build_default_service()

    @app.get("/")
    def healthcheck():
        return {"status": "ok", "service": "gradechat-api"}

    @app.post("/api/chat", response_model=ChatReply)
    def chat_turn(req: ChatRequest):
        session_id = req.session_id or str(uuid.uuid4())
        try:
            reply = chat.handle(req.message, session_id)
        except Exception:
            # storage failures are the only thing handle() lets through
            log.exception("chat turn failed for session %s", session_id)
            raise HTTPException(status_code=500, detail=ERROR_MESSAGE)
        return ChatReply(session_id=session_id, **reply.to_dict())

    @app.delete("/api/chat/{session_id}")
    def reset_session(session_id: str):
        reset = getattr(chat.store, "reset", None)
        if reset is not None:
            reset(session_id)
        return {"session_id": session_id, "reset": True}

    @app.get("/api/professors", response_model=List[Suggestion])
    def professors(q: str = Query(..., min_length=1), limit: int = Query(5, ge=1, le=25)):
        matches = chat.extractor.matcher.find_best_matches(q, chat.catalog, 0.3, limit)
        return [Suggestion(name=m.name, similarity=round(m.similarity, 3)) for m in matches]

    return app


app = create_app()


def main():
    import uvicorn

    logging.basicConfig(level=os.getenv("GRADECHAT_LOG_LEVEL", "INFO"))
    uvicorn.run(app, host=os.getenv("GRADECHAT_HOST", "127.0.0.1"), port=int(os.getenv("GRADECHAT_PORT", "8000")))


if __name__ == "__main__":
    main()
