from lineplan import create_app

app = create_app()

# Serve with: gunicorn -w 1 wsgi:app
# A single worker keeps one planning session per process.
