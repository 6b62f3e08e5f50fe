import logging
import os
import threading
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import load_env, load_settings, parse_origins
from .errors import EvidenceMapperError
from .evidence import record_evidence
from .integrations import GitHubClient, JiraClient, record_mfa_scan, record_remediation_ticket
from .logging_config import configure_logging
from .models import (
    AssessmentCreateRequest, AssessmentResponse, CopilotRequest, CopilotResponse,
    DocumentIngestRequest, EvidenceCreateRequest, EvidenceData, EvidenceResponse,
    GitHubScanRequest, GitHubScanResponse, IngestResponse, JiraCreateRequest, JiraCreateResponse,
    PolicyMapRequest, PolicyMapResponse, ScheduleCreateRequest, ScheduleResponse,
    SchedulerRunRequest, SchedulerRunResponse, StandardIngestResponse, ValidateRequest, ValidateResponse,
)
from .records import Control
from .services import Services, build_services

logger = logging.getLogger(__name__)


def get_services(request: Request) -> Services:
    # Built lazily so importing the app never validates settings; the lock keeps it to one build
    state = request.app.state
    if state.services is None:
        with state.services_lock:
            if state.services is None:
                settings = load_settings()
                configure_logging(settings.log_level)
                state.services = build_services(settings)
    return state.services


def create_app(services: Optional[Services] = None, cors_origins: Optional[list[str]] = None) -> FastAPI:
    app = FastAPI(title="Policy Evidence Mapper", version="1.0.0")
    app.state.services = services
    app.state.services_lock = threading.Lock()
    if cors_origins is None:
        cors_origins = services.settings.cors_origin_list if services else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins, allow_credentials=True,
        allow_methods=["*"], allow_headers=["*"],
    )

    @app.exception_handler(EvidenceMapperError)
    async def evidence_mapper_error(request: Request, exc: EvidenceMapperError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "error_type": exc.kind})

    @app.get("/health")
    def health(svc: Services = Depends(get_services)):
        return {"status": "ok", "ollama_model": svc.settings.ollama_model}

    # ============== Documents ==============

    @app.post("/documents/ingest", response_model=IngestResponse)
    def ingest_document(req: DocumentIngestRequest, svc: Services = Depends(get_services)):
        result = svc.ingestion.ingest_text(req.name, req.content)
        return IngestResponse(document_id=result.document_id, chunks=result.chunk_count, status=result.status)

    @app.post("/documents/upload", response_model=IngestResponse)
    async def upload_document(
        file: UploadFile = File(...),
        name: Optional[str] = Form(None),
        svc: Services = Depends(get_services),
    ):
        data = await file.read()
        result = svc.ingestion.ingest_file(name or file.filename, data, file.filename, file.content_type)
        return IngestResponse(document_id=result.document_id, chunks=result.chunk_count, status=result.status)

    @app.delete("/documents/{document_id}")
    def delete_document(document_id: str, svc: Services = Depends(get_services)):
        svc.ingestion.delete_document(document_id)
        return {"success": True}

    # ============== Policy mapping / evidence ==============

    @app.post("/policy/map", response_model=PolicyMapResponse)
    def map_policy(req: PolicyMapRequest, svc: Services = Depends(get_services)):
        if req.control_id:
            match, recorded = svc.mapper.link_policy(req.control_id)
        elif req.control_description:
            match, recorded = svc.mapper.map_control(req.control_code, req.control_description), None
        else:
            raise HTTPException(status_code=400, detail="Provide control_id or control_description.")
        if not match.found:
            return PolicyMapResponse(found=False, message=match.message)
        return PolicyMapResponse(
            found=True,
            evidence_data=EvidenceData(name=match.name, snippet=match.snippet, confidence=match.confidence),
            evidence_id=recorded.evidence.id if recorded else None,
            control_status=recorded.control_status if recorded else None,
        )

    @app.post("/evidence", response_model=EvidenceResponse)
    def create_evidence(req: EvidenceCreateRequest, svc: Services = Depends(get_services)):
        recorded = record_evidence(
            svc.store, svc.synchronizer, req.control_id,
            name=req.name, source_type=req.source_type, status=req.status, url=req.url, snippet=req.snippet,
        )
        return EvidenceResponse(**recorded.model_dump())

    @app.post("/evidence/validate", response_model=ValidateResponse)
    def validate_evidence(req: ValidateRequest, svc: Services = Depends(get_services)):
        outcome = svc.validator.validate(req.evidence_id, req.file_url, req.control_description)
        return ValidateResponse(
            verdict=outcome.verdict,
            evidence_status=outcome.evidence_status,
            control_status=outcome.control_status,
            partial_sync=outcome.partial_sync,
        )

    # ============== Standards / assessments / schedules ==============

    @app.post("/standards/ingest", response_model=StandardIngestResponse)
    async def ingest_standard(
        file: UploadFile = File(...),
        name: str = Form(...),
        svc: Services = Depends(get_services),
    ):
        data = await file.read()
        standard = svc.standards.import_spreadsheet(name, data, file.filename)
        return StandardIngestResponse(standard_id=standard.id, count=standard.total_controls)

    @app.delete("/standards/{standard_id}")
    def delete_standard(standard_id: str, svc: Services = Depends(get_services)):
        svc.standards.delete_standard(standard_id)
        return {"success": True}

    @app.post("/assessments", response_model=AssessmentResponse)
    def create_assessment(req: AssessmentCreateRequest, svc: Services = Depends(get_services)):
        assessment = svc.scheduler.create_assessment(req.title, req.standard_id, req.system_id)
        cloned = len(svc.store.where(Control, assessment_id=assessment.id))
        return AssessmentResponse(assessment=assessment, controls_cloned=cloned)

    @app.post("/schedules", response_model=ScheduleResponse)
    def create_schedule(req: ScheduleCreateRequest, svc: Services = Depends(get_services)):
        schedule = svc.scheduler.create_schedule(req.name, req.standard_id, req.frequency, req.system_id)
        return ScheduleResponse(schedule=schedule)

    @app.delete("/schedules/{schedule_id}")
    def delete_schedule(schedule_id: str, svc: Services = Depends(get_services)):
        svc.scheduler.delete_schedule(schedule_id)
        return {"success": True}

    @app.post("/scheduler/run", response_model=SchedulerRunResponse)
    def run_schedule(req: SchedulerRunRequest, svc: Services = Depends(get_services)):
        assessment = svc.scheduler.run_schedule(req.schedule_id)
        cloned = len(svc.store.where(Control, assessment_id=assessment.id))
        return SchedulerRunResponse(assessment_id=assessment.id, title=assessment.title, controls_cloned=cloned)

    # ============== Copilot ==============

    @app.post("/copilot", response_model=CopilotResponse)
    def copilot(req: CopilotRequest, svc: Services = Depends(get_services)):
        result = svc.chat.ask(req.message, req.context)
        return CopilotResponse(reply=result["answer"], used_context=result["context"])

    # ============== Integrations ==============

    @app.post("/integrations/jira/create", response_model=JiraCreateResponse)
    def create_jira_ticket(req: JiraCreateRequest, svc: Services = Depends(get_services)):
        jira = JiraClient.from_settings(svc.settings)
        ticket, recorded = record_remediation_ticket(
            svc.store, svc.synchronizer, jira, req.control_id, req.title, req.description
        )
        return JiraCreateResponse(ticket_key=ticket.key, ticket_url=ticket.url, evidence_id=recorded.evidence.id)

    @app.post("/integrations/github/scan", response_model=GitHubScanResponse)
    def github_scan(req: GitHubScanRequest, svc: Services = Depends(get_services)):
        github = GitHubClient.from_settings(svc.settings)
        target = req.target or svc.settings.github_target
        status, recorded = record_mfa_scan(svc.store, svc.synchronizer, github, req.control_id, target)
        return GitHubScanResponse(
            mfa_enabled=status.mfa_enabled, org=status.target, type=status.account_type,
            evidence_id=recorded.evidence.id,
        )

    return app


load_env()
app = create_app(cors_origins=parse_origins(os.getenv("CORS_ORIGINS")))


def run():
    import uvicorn

    uvicorn.run(app, host=os.getenv("API_HOST", "127.0.0.1"), port=int(os.getenv("API_PORT", "8000")))
