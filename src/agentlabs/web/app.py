from __future__ import annotations

from typing import Optional, Dict
import logging
import threading

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from agentlabs.agents.agent import ChatClientAgent
from agentlabs.agents.thread import AgentThread
from agentlabs.bootstrap import build_agent, transcripts_dir
from agentlabs.config_loader import Settings
from agentlabs.resolver import describe

logger = logging.getLogger(__name__)


class ChatRequest(BaseModel):
    session_id: Optional[str] = None
    message: str


def create_app(settings: Settings, *, agent: Optional[ChatClientAgent] = None) -> FastAPI:
    """
    Expose one agent over HTTP. Each session id maps to its own thread,
    file-backed when Storage:TranscriptsDir is set.
    """
    agent = agent or build_agent(settings)

    app = FastAPI(title="agentlabs")
    app.state.settings = settings
    app.state.agent = agent
    app.state.transcripts_dir = transcripts_dir(settings)
    app.state.sessions: Dict[str, AgentThread] = {}
    app.state.lock = threading.Lock()

    def _create_session() -> str:
        thread = agent.new_thread(root_dir=app.state.transcripts_dir)
        with app.state.lock:
            app.state.sessions[thread.id] = thread
        return thread.id

    def _get_session(session_id: Optional[str]) -> tuple[str, AgentThread]:
        if session_id:
            with app.state.lock:
                thread = app.state.sessions.get(session_id)
            if thread is not None:
                return session_id, thread
            # Unknown id: start fresh rather than fail
            logger.info("unknown session %s; starting a new one", session_id)
        new_id = _create_session()
        return new_id, app.state.sessions[new_id]

    @app.get("/api/config")
    def api_config():
        return JSONResponse({"provider": describe(settings), "agent": agent.name})

    @app.post("/api/session")
    def api_session():
        return JSONResponse({"session_id": _create_session()})

    @app.post("/api/chat")
    def api_chat(req: ChatRequest):
        if not req.message.strip():
            raise HTTPException(status_code=400, detail="Empty message")
        session_id, thread = _get_session(req.session_id)
        response = agent.run(req.message, thread)
        return JSONResponse({"session_id": session_id, "reply": response.text, "response_id": response.response_id})

    @app.post("/api/stream")
    def api_stream(req: ChatRequest):
        if not req.message.strip():
            raise HTTPException(status_code=400, detail="Empty message")
        session_id, thread = _get_session(req.session_id)

        def gen():
            try:
                for update in agent.run_stream(req.message, thread):
                    if update.text:
                        yield update.text
            except Exception as e:
                # Headers are already sent; report in-band
                logger.exception("stream failed for session %s", session_id)
                yield f"\n[error] {e}"

        return StreamingResponse(gen(), media_type="text/plain", headers={"X-Session-Id": session_id})

    return app


def run(
    *,
    settings: Settings,
    host: str = "127.0.0.1",
    port: int = 8000,
) -> None:
    import uvicorn

    app = create_app(settings)
    uvicorn.run(app, host=host, port=port)
