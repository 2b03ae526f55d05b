# backend/wsgi.py
# Entry point for `flask --app wsgi ...` and WSGI servers (run from the backend directory).
from bookstall import create_app

app = create_app()
