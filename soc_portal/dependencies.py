from fastapi import Request


def get_db(request: Request):
    """Yield a session from the application's database; closed after the request."""
    with request.app.state.database.session() as db:
        yield db
