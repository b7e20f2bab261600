from dataclasses import asdict

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from quizquest.auth import get_current_user
from quizquest.db import get_session
from quizquest.errors import QuizQuestError
from quizquest.middleware.rate_limit import ai_generation_limit, general_api_limit
from quizquest.schemas import EstimateRequest, GenerateRequest, SaveRequest
from quizquest.services.billing import BudgetStore
from quizquest.services.pipeline import STRATEGY_AI, STRATEGY_LOCAL, GenerationPipeline
from quizquest.services.quiz_store import SqlQuizSink
from quizquest.services.storage import kv_store


router = APIRouter(prefix="/lessons", tags=["lessons"])


def get_pipeline(user_id: str = Depends(get_current_user)) -> GenerationPipeline:
    return GenerationPipeline(BudgetStore(kv_store, user_id))


def _as_http(e: QuizQuestError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.message)


def _is_pdf(file: UploadFile) -> bool:
    return (file.filename or "").lower().endswith(".pdf") or file.content_type == "application/pdf"


@router.post("/extract")
@general_api_limit()
async def extract_lesson(request: Request, file: UploadFile = File(...),
                         pipeline: GenerationPipeline = Depends(get_pipeline)):
    if not _is_pdf(file):
        raise HTTPException(status_code=400, detail="File must be a PDF")
    content = await file.read()
    try:
        text = await run_in_threadpool(pipeline.acquire_text, pdf_bytes=content)
    except QuizQuestError as e:
        raise _as_http(e)
    return {"filename": file.filename, "chars": len(text), "text": text}


@router.post("/estimate")
def estimate(body: EstimateRequest, pipeline: GenerationPipeline = Depends(get_pipeline)):
    est = pipeline.estimate(body.text, body.count)
    state = pipeline.budget_store.load()
    return {
        "estimate": asdict(est),
        "budget": asdict(state),
        "over_budget": not state.allows(est),
    }


def _generate(pipeline: GenerationPipeline, body: GenerateRequest, strategy: str) -> dict:
    try:
        text = pipeline.acquire_text(text=body.text)
        questions = pipeline.generate(text, body.count, strategy=strategy, api_key=body.api_key)
    except QuizQuestError as e:
        raise _as_http(e)
    return {
        "strategy": strategy,
        "requested": body.count,
        "questions": [q.to_record() for q in questions],
        "estimate": asdict(pipeline.estimate(text, body.count)),
        "budget": asdict(pipeline.budget_store.load()),
    }


@router.post("/generate/local")
def generate_local(body: GenerateRequest, pipeline: GenerationPipeline = Depends(get_pipeline)):
    return _generate(pipeline, body, STRATEGY_LOCAL)


@router.post("/generate/ai")
@ai_generation_limit()
def generate_ai(request: Request, body: GenerateRequest, pipeline: GenerationPipeline = Depends(get_pipeline)):
    return _generate(pipeline, body, STRATEGY_AI)


@router.post("/save")
def save_quiz(body: SaveRequest, pipeline: GenerationPipeline = Depends(get_pipeline),
              session: Session = Depends(get_session)):
    try:
        quiz_id = pipeline.save(SqlQuizSink(session), pipeline.user_id, body.title, body.questions,
                                description=body.description)
    except QuizQuestError as e:
        raise _as_http(e)
    return {"quiz_id": quiz_id, "questions": len(body.questions)}
