import sys
import os

# 1. FORCE THE PATH
# Passenger starts us from its own working directory, so put the project
# folder (this file's folder unless PROJECT_HOME says otherwise) first.
project_home = os.environ.get('PROJECT_HOME', os.path.dirname(os.path.abspath(__file__)))
if project_home not in sys.path:
    sys.path.insert(0, project_home)

# 2. BUILD THE APP
# Passenger looks for a module-level 'application'.
from main import create_app
application = create_app(os.environ.get('FLASK_CONFIG', 'production'))
