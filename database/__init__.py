def get_db_models():
    """
    Dynamically import models to avoid circular imports.
    Returns list of SQLAlchemy models for registration or other purposes.
    """
    from models.user import User
    from models.expenses import Expense

    return [
        User,
        Expense,
    ]
