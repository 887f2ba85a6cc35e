# wsgi.py
from pos_api import create_app

application = create_app()
