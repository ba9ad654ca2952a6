# supermarket_ai/wsgi.py
from supermarket_ai.app import create_app

# For gunicorn: gunicorn supermarket_ai.wsgi:app
app = create_app()


if __name__ == "__main__":
    app.run(debug=True)
