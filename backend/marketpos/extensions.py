# Overview: Shared Flask extensions; bound to the app in create_app().

from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

# Models, services and the CLI all use this one session registry
db = SQLAlchemy()
migrate = Migrate()
