import os

from .app import create_app

# python -m habit_tracker
create_app().run(host="0.0.0.0", port=int(os.getenv("PORT", 5000)))
