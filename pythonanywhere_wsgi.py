import sys
import os
import logging

# Add your project directory to the sys.path
project_home = '/home/YOUR_USERNAME/recipe-catalog'
if project_home not in sys.path:
    sys.path.insert(0, project_home)

# Set the working directory
os.chdir(project_home)

# Build the Flask app
from app import create_app, init_db

application = create_app('production')
logging.basicConfig(level=application.config['LOG_LEVEL'])
init_db(application)
