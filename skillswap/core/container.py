from typing import Optional

from .config import Settings
from .database import Database, create_database
from .security import PasswordHasher, TokenIssuer
from ..repositories.ratings import RatingRepository
from ..repositories.swaps import SwapRepository
from ..repositories.users import UserRepository
from ..services.admin_service import AdminService
from ..services.file_service import PhotoStorage
from ..services.notification_service import EmailNotifier, Notifier
from ..services.rating_service import RatingService
from ..services.swap_service import SwapService
from ..services.user_service import UserService

class Container:
    """Everything the request handlers need, built once at startup."""

    def __init__(self, settings: Settings, db: Database, notifier: Notifier):
        self.settings = settings
        self.db = db
        self.notifier = notifier
        self.hasher = PasswordHasher(settings.password_schemes)
        self.tokens = TokenIssuer.from_settings(settings)
        self.photos = PhotoStorage(settings.upload_dir, settings.max_upload_size)

        self.user_repository = UserRepository(db)
        self.swap_repository = SwapRepository(db)
        self.rating_repository = RatingRepository(db)

        self.users = UserService(self.user_repository, self.rating_repository, self.hasher)
        self.swaps = SwapService(self.swap_repository, self.users, notifier)
        self.ratings = RatingService(
            self.rating_repository,
            self.swaps,
            self.users,
            exclude_flagged=settings.exclude_flagged_ratings,
        )
        self.admin = AdminService(
            self.user_repository,
            self.swap_repository,
            self.rating_repository,
            self.users,
            self.ratings,
            notifier,
            bucket_limit=settings.report_bucket_limit,
            daily_bucket_limit=settings.daily_bucket_limit,
        )

def build_container(
    settings: Settings, db: Optional[Database] = None, notifier: Optional[Notifier] = None
) -> Container:
    return Container(
        settings,
        db if db is not None else create_database(settings),
        notifier if notifier is not None else EmailNotifier(settings),
    )
