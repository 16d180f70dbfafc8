import sqlalchemy as sa
import sqlalchemy.orm as so
from dotenv import load_dotenv
import os

load_dotenv('.flaskenv')

from sportbook import create_app, db
from sportbook.models import (
    Profile, Event, EventRegistration, EventMessage, EventChange, Rating, EventCancellation, ErrorLog
)

app = create_app(os.getenv('FLASK_CONFIG') or 'development')

@app.shell_context_processor
def make_shell_context():
    return {
        'sa': sa,
        'so': so,
        'db': db,
        'Profile': Profile,
        'Event': Event,
        'EventRegistration': EventRegistration,
        'EventMessage': EventMessage,
        'EventChange': EventChange,
        'Rating': Rating,
        'EventCancellation': EventCancellation,
        'ErrorLog': ErrorLog,
    }

if __name__ == '__main__':
    app.run(debug=True)
