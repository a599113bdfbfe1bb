import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from topology.bootstrap import FileBootstrapSource, load_bootstrap_payload
from topology.compiler import compile_to_mermaid
from topology.compliance import get_rule_registry
from topology.config import BOOTSTRAP_DIR
from topology.db.models import BuildLog
from topology.db.session import get_db
from topology.ir.errors import BootstrapError, TopologyError
from topology.pipeline.controller import BuildController
from topology.schemas import BuildRequest, BuildResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def record_build(
    db: Session,
    request: BuildRequest,
    succeeded: bool,
    plan: Optional[dict] = None,
    error: Optional[Exception] = None,
) -> None:
    """Persist a build attempt. Persistence problems never fail the request."""
    try:
        db.add(BuildLog(
            config=request.config.model_dump_json(by_alias=True),
            dry_run=request.dry_run,
            succeeded=succeeded,
            error_kind=type(error).__name__ if error else None,
            error_message=str(error) if error else None,
            plan=json.dumps(plan) if plan is not None else None,
        ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("build log not persisted: %s", e)


@router.post("/build", response_model=BuildResponse)
def build_topology(request: BuildRequest, db: Session = Depends(get_db)):
    try:
        bootstrap = load_bootstrap_payload(request.config, FileBootstrapSource(BOOTSTRAP_DIR))
    except BootstrapError as e:
        record_build(db, request, succeeded=False, error=e)
        raise HTTPException(status_code=400, detail={"error": "BootstrapError", "message": str(e)})

    try:
        result = BuildController().run(request.config, bootstrap)
    except TopologyError as e:
        record_build(db, request, succeeded=False, error=e)
        raise HTTPException(status_code=422, detail=e.to_dict())

    plan = None
    mermaid = None
    if not request.dry_run:
        if request.output_format in ("plan", "both"):
            plan = result.to_plan()
        if request.output_format in ("mermaid", "both"):
            mermaid = compile_to_mermaid(result)

    record_build(db, request, succeeded=True, plan=plan)

    return BuildResponse(
        status="warning" if result.warnings else "success",
        outputs=result.output_values(),
        warnings=result.warnings,
        validation=result.validation.to_dict(),
        plan=plan,
        mermaid=mermaid,
    )


@router.get("/rules")
def list_rules():
    registry = get_rule_registry()
    return {"rules": [rule.to_dict() for rule in registry.list_all()]}
