from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from quizquest.auth import get_current_user
from quizquest.schemas import ApiKeyUpdate, BudgetUpdate
from quizquest.services.billing import BudgetStore
from quizquest.services.llm import is_plausible_api_key
from quizquest.services.storage import kv_store


router = APIRouter(prefix="/budget", tags=["budget"])


def get_budget_store(user_id: str = Depends(get_current_user)) -> BudgetStore:
    return BudgetStore(kv_store, user_id)


@router.get("")
def read_budget(store: BudgetStore = Depends(get_budget_store)):
    state = store.load()
    return {**asdict(state), "remaining_usd": state.remaining_usd}


@router.put("")
def update_budget(body: BudgetUpdate, store: BudgetStore = Depends(get_budget_store)):
    return asdict(store.set_budget(body.budget_usd))


@router.post("/reset")
def reset_spent(store: BudgetStore = Depends(get_budget_store)):
    return asdict(store.reset_spent())


@router.put("/api-key")
def store_api_key(body: ApiKeyUpdate, store: BudgetStore = Depends(get_budget_store)):
    key = body.api_key.strip()
    if not is_plausible_api_key(key):
        raise HTTPException(status_code=400, detail="Invalid OpenAI API key. Paste a valid 'sk-...' key.")
    store.set_api_key(key)
    return {"has_api_key": True}


@router.delete("/api-key")
def forget_api_key(store: BudgetStore = Depends(get_budget_store)):
    store.clear_api_key()
    return {"has_api_key": False}
