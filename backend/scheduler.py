import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from tasks.daily_tasks import run_daily_tasks
from utils.dates import APP_TIMEZONE

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()

# Every day at 00:30 local time
scheduler.add_job(run_daily_tasks, CronTrigger(hour=0, minute=30, timezone=APP_TIMEZONE), id='daily_tasks_job')


def start_scheduler():
    if not scheduler.running:
        scheduler.start()
        logger.info("Background scheduler started")
