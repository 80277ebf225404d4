"""
Housing Desk Modules

- auth: Users, roles, login
- executors: Specialist profiles, availability, stats
- requests: Service requests, status workflow, work timer, executor board
- reschedule: Time-change proposals between resident and executor
- marketplace: Courier fulfilment of marketplace orders
- notifications: In-app notifications
- activity: Activity log for staff
- dashboard: Summary counters
- sse: Realtime event stream
"""


def load_models() -> None:
    """Import every model module so Base.metadata sees all tables."""
    from housing_desk.modules.activity import models as activity_models  # noqa: F401
    from housing_desk.modules.auth import models as auth_models  # noqa: F401
    from housing_desk.modules.executors import models as executor_models  # noqa: F401
    from housing_desk.modules.marketplace import models as marketplace_models  # noqa: F401
    from housing_desk.modules.notifications import models as notification_models  # noqa: F401
    from housing_desk.modules.requests import models as request_models  # noqa: F401
    from housing_desk.modules.reschedule import models as reschedule_models  # noqa: F401
