"""
Interview reconciliation DAG

Runs every 15 minutes to complete interviews whose meeting window has ended
without the hirer marking an outcome. Safe to overlap with manual marking:
each interview is completed at most once.
"""

from datetime import datetime, timedelta

from airflow import DAG
from airflow.operators.python import PythonOperator
from task_functions import sweep_stale_interviews_task

default_args = {
    "owner": "platform",
    "depends_on_past": False,
    "email_on_failure": True,
    "email_on_retry": False,
    "retries": 3,
    "retry_delay": timedelta(minutes=5),
    "start_date": datetime(2025, 1, 1),
}

dag = DAG(
    "interview_reconciliation_sweep",
    default_args=default_args,
    description="Complete stale Scheduled interviews and notify both parties",
    schedule="*/15 * * * *",
    catchup=False,
    max_active_runs=1,
    tags=["interviews", "reconciliation"],
)

sweep_stale_interviews = PythonOperator(
    task_id="sweep_stale_interviews",
    python_callable=sweep_stale_interviews_task,
    dag=dag,
)
