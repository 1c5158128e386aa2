import os

from config import Config

from karya.auth import AuthService, UserService
from karya.badges import BadgeService
from karya.calendar_integration import CalendarAccountService, GoogleCalendarClient
from karya.jobs import JobService
from karya.lifecycle import ApplicationLifecycleEngine
from karya.notifier import EmailNotifier, NotificationDispatcher, NotificationService, RoomRegistry
from karya.payments import KhaltiClient, PaymentService, StripeClient
from karya.projects import ProjectService
from karya.reviews import ReviewService
from karya.shared import PostgreSQLDatabase
from karya.store import EntityStore

# Rooms live in this process; every request handler publishes into the same registry
_realtime = RoomRegistry()


def build_db_connection_string() -> str:
    """
    Build PostgreSQL connection string from environment variables.

    Checks DATABASE_URL first, then falls back to individual POSTGRES_* variables.

    Returns:
        PostgreSQL connection string
    """
    # Check for DATABASE_URL first (useful for tests and deployments)
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    # Fall back to individual environment variables
    host = os.getenv("POSTGRES_HOST", "localhost")
    port = os.getenv("POSTGRES_PORT", "5432")
    user = os.getenv("POSTGRES_USER", "postgres")
    password = os.getenv("POSTGRES_PASSWORD", "postgres")
    db = os.getenv("POSTGRES_DB", "karya")
    ssl_mode = os.getenv("POSTGRES_SSL_MODE", "")

    conn_str = f"postgresql://{user}:{password}@{host}:{port}/{db}"
    if ssl_mode:
        conn_str += f"?sslmode={ssl_mode}"
    return conn_str


def get_database() -> PostgreSQLDatabase:
    return PostgreSQLDatabase(
        connection_string=build_db_connection_string(),
        maxconn=Config.DB_POOL_MAX,
        pool_timeout=Config.DB_POOL_TIMEOUT,
    )


def get_entity_store() -> EntityStore:
    return EntityStore(database=get_database())


def get_realtime() -> RoomRegistry:
    return _realtime


def get_email_notifier() -> EmailNotifier | None:
    """
    Get EmailNotifier if SMTP is configured.

    Returns:
        EmailNotifier instance or None if SMTP_HOST is not set
    """
    if not os.getenv("SMTP_HOST"):
        return None
    return EmailNotifier()


def get_dispatcher(store: EntityStore | None = None) -> NotificationDispatcher:
    return NotificationDispatcher(
        store=store or get_entity_store(),
        realtime=get_realtime(),
        email_notifier=get_email_notifier(),
    )


def get_calendar_client() -> GoogleCalendarClient:
    return GoogleCalendarClient()


def get_user_service() -> UserService:
    """
    Get UserService instance with database connection.

    Returns:
        UserService instance
    """
    database = get_database()
    return UserService(database=database, badge_service=BadgeService(EntityStore(database)))


def get_auth_service() -> AuthService:
    return AuthService(user_service=get_user_service())


def get_job_service() -> JobService:
    return JobService(database=get_database())


def get_lifecycle_engine() -> ApplicationLifecycleEngine:
    """
    Get the lifecycle engine wired to the store, dispatcher and calendar.

    Returns:
        ApplicationLifecycleEngine instance
    """
    store = get_entity_store()
    return ApplicationLifecycleEngine(
        store=store,
        dispatcher=get_dispatcher(store),
        calendar=get_calendar_client(),
        meeting_duration_minutes=Config.MEETING_DURATION_MINUTES,
    )


def get_project_service() -> ProjectService:
    store = get_entity_store()
    return ProjectService(store=store, dispatcher=get_dispatcher(store))


def get_payment_service() -> PaymentService:
    """
    Get PaymentService with both gateways.

    Returns:
        PaymentService instance
    """
    store = get_entity_store()
    return PaymentService(
        store=store,
        dispatcher=get_dispatcher(store),
        card_gateway=StripeClient(),
        wallet_gateway=KhaltiClient(),
        public_api_url=Config.PUBLIC_API_URL,
        frontend_url=Config.FRONTEND_URL,
    )


def get_badge_service() -> BadgeService:
    return BadgeService(store=get_entity_store())


def get_review_service() -> ReviewService:
    store = get_entity_store()
    return ReviewService(
        store=store, badge_service=BadgeService(store), dispatcher=get_dispatcher(store)
    )


def get_notification_service() -> NotificationService:
    return NotificationService(
        store=get_entity_store(),
        read_limit=Config.READ_NOTIFICATION_LIMIT,
    )


def get_calendar_account_service() -> CalendarAccountService:
    return CalendarAccountService(store=get_entity_store(), calendar=get_calendar_client())
