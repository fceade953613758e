"""
FastAPI Main Application
REST surface over the TrialSight operations core
"""

from fastapi import FastAPI, UploadFile, File, Form, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import Optional
from pydantic import BaseModel
import traceback

from backend.config import settings, print_provider_status
from backend.trialsight import (
    TrialOperations, GenerationError, NotFoundError, ValidationError, to_dict,
)
from backend.trialsight.simulation import risk_band

# Initialize FastAPI
app = FastAPI(
    title="TrialSight API",
    description="REST API for AI-assisted clinical trial operations",
    version="1.0.0",
    debug=settings.debug,
)

# CORS Configuration (permissive for local development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "*",
    "Access-Control-Allow-Headers": "*",
}


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)}, headers=CORS_HEADERS)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return _error(404, exc)


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError):
    return _error(400, exc)


@app.exception_handler(GenerationError)
async def generation_handler(request: Request, exc: GenerationError):
    print(f"[api] Generation failed on {request.url.path}: {exc}")
    return _error(502, exc)


# Global exception handler to ensure CORS headers are always sent
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    traceback.print_exc()
    return _error(500, exc)


@app.on_event("startup")
async def startup_event():
    print(f"[api] Starting {settings.app_name}")
    print_provider_status()


# One operations core per process: a single logical user session.
operations = TrialOperations()


def get_operations() -> TrialOperations:
    return operations


# ============================================================================
# REQUEST BODIES
# ============================================================================

class TaskInput(BaseModel):
    title: str
    description: str = ""
    priority: str = "Medium"
    assignee: Optional[str] = None


class TaskStatusInput(BaseModel):
    status: str


class ReplyInput(BaseModel):
    body: str


class SimulationInput(BaseModel):
    scenario: str


class ChatInput(BaseModel):
    text: str


# ============================================================================
# REST API ENDPOINTS
# ============================================================================

@app.get("/")
async def root():
    """Health check endpoint"""
    return {
        "status": "online",
        "service": settings.app_name,
        "version": "1.0.0"
    }


# === TRIALS ===

@app.get("/api/trials")
async def list_trials(ops: TrialOperations = Depends(get_operations)):
    return {
        "active_trial_id": ops.active_trial_id,
        "trials": [
            {**to_dict(t), "percent_recruited": t.percent_recruited()}
            for t in ops.list_trials()
        ],
    }


@app.post("/api/trials/{trial_id}/select")
async def select_trial(trial_id: str, ops: TrialOperations = Depends(get_operations)):
    trial = ops.select_trial(trial_id)
    return {"active_trial_id": trial.id, "name": trial.name}


@app.get("/api/trials/{trial_id}/entities")
async def trial_entities(trial_id: str, ops: TrialOperations = Depends(get_operations)):
    return to_dict(ops.project_entities(trial_id))


@app.get("/api/trials/{trial_id}/dashboard")
async def trial_dashboard(trial_id: str, ops: TrialOperations = Depends(get_operations)):
    return ops.dashboard(trial_id)


# === TASKS ===

@app.post("/api/tasks")
async def create_task(input: TaskInput, ops: TrialOperations = Depends(get_operations)):
    task = ops.create_task(input.title, input.description, input.priority, assignee=input.assignee)
    return to_dict(task)


@app.patch("/api/tasks/{task_id}")
async def update_task(task_id: str, input: TaskStatusInput,
                      ops: TrialOperations = Depends(get_operations)):
    return to_dict(ops.update_task_status(task_id, input.status))


@app.post("/api/tasks/{task_id}/draft-email")
async def draft_task_email(task_id: str, ops: TrialOperations = Depends(get_operations)):
    return {"task_id": task_id, "draft": await ops.draft_email(task_id)}


# === MESSAGES ===

@app.get("/api/messages/global")
async def global_messages(ops: TrialOperations = Depends(get_operations)):
    return to_dict(ops.project_global())


@app.post("/api/messages/{message_id}/read")
async def read_message(message_id: str, ops: TrialOperations = Depends(get_operations)):
    return to_dict(ops.mark_message_read(message_id))


@app.post("/api/messages/{message_id}/draft-reply")
async def draft_message_reply(message_id: str, ops: TrialOperations = Depends(get_operations)):
    return {"message_id": message_id, "draft": await ops.draft_reply(message_id)}


@app.post("/api/messages/{message_id}/reply")
async def send_message_reply(message_id: str, input: ReplyInput,
                             ops: TrialOperations = Depends(get_operations)):
    return to_dict(ops.send_reply(message_id, input.body))


# === DOCUMENTS ===

@app.post("/api/documents")
async def upload_document(
    file: UploadFile = File(...),
    doc_type: str = Form("Protocol"),
    ops: TrialOperations = Depends(get_operations),
):
    """Upload a document and run the risk analysis against the active trial"""
    content = await file.read()
    outcome = await ops.analyze_document(file.filename or "", content, doc_type)
    return {
        "document": to_dict(outcome.document),
        "tasks": to_dict(outcome.tasks),
        "analysis": outcome.analysis.model_dump(by_alias=True) if outcome.analysis else None,
        "error": outcome.error,
    }


# === SIMULATIONS ===

def _simulation_payload(result) -> dict:
    return {
        **result.model_dump(by_alias=True),
        "riskBand": risk_band(result.overall_risk_score),
    }


@app.post("/api/simulations")
async def run_simulation(input: SimulationInput, ops: TrialOperations = Depends(get_operations)):
    result = await ops.run_simulation(input.scenario)
    if result is None:
        raise GenerationError("Simulation failed; previous result kept")
    return _simulation_payload(result)


@app.get("/api/simulations/latest")
async def latest_simulation(ops: TrialOperations = Depends(get_operations)):
    result = ops.latest_simulation()
    return _simulation_payload(result) if result is not None else None


# === ASSISTANT ===

@app.post("/api/assistant/activate")
async def activate_assistant(ops: TrialOperations = Depends(get_operations)):
    return to_dict(await ops.activate_assistant())


@app.post("/api/assistant/messages")
async def send_chat(input: ChatInput, ops: TrialOperations = Depends(get_operations)):
    return to_dict(await ops.send_chat_message(input.text))


@app.get("/api/assistant/messages")
async def chat_history(ops: TrialOperations = Depends(get_operations)):
    return to_dict(ops.chat_history())


# === AUDIT ===

@app.get("/api/audit")
async def audit_log(trial_id: Optional[str] = None, limit: Optional[int] = None,
                    ops: TrialOperations = Depends(get_operations)):
    return to_dict(ops.audit_entries(trial_id=trial_id, limit=limit))
