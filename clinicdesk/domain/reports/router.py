"""Cron router - scheduled jobs callable by an external scheduler"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from ... import config
from ...database import get_db
from ...webhook_security import constant_time_compare
from .service import ReportService

logger = logging.getLogger(__name__)


async def verify_cron_secret(x_cron_secret: Optional[str] = Header(None)) -> None:
    """401 unless x-cron-secret matches CRON_SECRET; an unset secret locks the endpoints"""
    if not config.CRON_SECRET or not x_cron_secret:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if not constant_time_compare(x_cron_secret, config.CRON_SECRET):
        logger.warning("⚠️ Cron call with wrong secret")
        raise HTTPException(status_code=401, detail="Unauthorized")


router = APIRouter(prefix="/cron", tags=["Cron"], dependencies=[Depends(verify_cron_secret)])


def get_report_service(db: Session = Depends(get_db)) -> ReportService:
    return ReportService(db)


@router.get("/reminders")
async def run_reminders(service: ReportService = Depends(get_report_service)):
    return await service.send_reminders()


@router.get("/daily-summary")
async def run_daily_summary(service: ReportService = Depends(get_report_service)):
    return await service.send_daily_summaries()
