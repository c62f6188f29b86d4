"""
Web process entry point.

    gunicorn wsgi:app     # Procfile 'web'
    python wsgi.py        # local dev server on $PORT (default 8080)
"""
import os

from campaign_bot import create_app

app = create_app()

if __name__ == '__main__':
    app.run(
        host=os.getenv('HOST', '0.0.0.0'),
        port=int(os.getenv('PORT', '8080')),
        debug=os.getenv('FLASK_DEBUG') == '1',
    )
