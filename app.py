# app.py
# Ponto de entrada WSGI: `gunicorn app:app`
from finmemory.main import create_app

app = create_app()

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=8000)
