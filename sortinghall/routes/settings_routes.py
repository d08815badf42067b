import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from sortinghall.database import get_session
from sortinghall.models.settings import HallSettingsSchema, RowSelectionStrategy, Setting
from sortinghall.routes.notification_routes import trigger_hall_updated_sync

router = APIRouter(prefix="/api/settings", tags=["Settings"])
logger = logging.getLogger("app")

ROW_SELECTION_STRATEGY_KEY = "hall.row_selection_strategy"
DEFAULTS = {
    ROW_SELECTION_STRATEGY_KEY: RowSelectionStrategy.MOST_FREE_PALLETS.value,
}


def get_setting(session: Session, key: str, default: str | None = None) -> str | None:
    setting = session.exec(select(Setting).where(Setting.key == key)).first()
    if setting:
        return setting.value
    if default is not None:
        setting = Setting(key=key, value=default)
        session.add(setting)
        session.commit()
        session.refresh(setting)
        return setting.value
    return None


def set_setting(session: Session, key: str, value: str) -> None:
    setting = session.exec(select(Setting).where(Setting.key == key)).first()
    if setting:
        setting.value = value
    else:
        setting = Setting(key=key, value=value)
        session.add(setting)
    session.commit()


def _normalize_strategy(value: str | None) -> RowSelectionStrategy | None:
    if value is None:
        return None
    try:
        return RowSelectionStrategy(str(value).strip().lower())
    except ValueError:
        return None


def get_row_selection_strategy(session: Session) -> RowSelectionStrategy:
    raw = get_setting(session, ROW_SELECTION_STRATEGY_KEY, DEFAULTS[ROW_SELECTION_STRATEGY_KEY])
    strategy = _normalize_strategy(raw)
    if strategy is None:
        logger.warning("Ungueltige Strategie '%s' in settings, verwende Default.", raw)
        return RowSelectionStrategy.MOST_FREE_PALLETS
    return strategy


def set_row_selection_strategy(session: Session, strategy: RowSelectionStrategy) -> None:
    set_setting(session, ROW_SELECTION_STRATEGY_KEY, strategy.value)
    logger.info("Lagerist - RowSelectionStrategy geaendert auf %s", strategy.value)


@router.get("/row-selection-strategy", response_model=HallSettingsSchema)
def read_row_selection_strategy(session: Session = Depends(get_session)):
    return HallSettingsSchema(row_selection_strategy=get_row_selection_strategy(session))


@router.put("/row-selection-strategy", response_model=HallSettingsSchema)
def update_row_selection_strategy(payload: dict, session: Session = Depends(get_session)):
    strategy = _normalize_strategy(payload.get("row_selection_strategy"))
    if strategy is None:
        allowed = ", ".join(s.value for s in RowSelectionStrategy)
        raise HTTPException(status_code=400, detail=f"row_selection_strategy muss einer von {allowed} sein.")
    set_row_selection_strategy(session, strategy)
    trigger_hall_updated_sync()
    return HallSettingsSchema(row_selection_strategy=strategy)
