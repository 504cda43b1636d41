"""
Shared module for code used by the REST API and the CLI.

STRUCTURE:
- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging
  - constants.py: Order, session and split statuses, limits

- shared.infrastructure: Database and messaging
  - db.py: SQLAlchemy sessions, safe_commit()
  - correlation.py: X-Request-ID middleware and log filter
  - events/: Redis pub/sub notifications

- shared.security: Request protection
  - rate_limit.py: Per-IP limits on cart writes

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging
  - validators.py: Name, participant, quantity and amount validation
  - money.py: Decimal rounding and VAT
  - schemas.py: Pydantic request/response schemas
  - health.py: Dependency health checks

IMPORT EXAMPLES:
    from shared.infrastructure.db import get_db, safe_commit
    from shared.config.settings import settings
    from shared.config.constants import OrderStatus
    from shared.utils.exceptions import NotFoundError, ValidationError
"""
