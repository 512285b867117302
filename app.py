import os

from dotenv import load_dotenv

from donate import create_app
from donate.config import Settings

load_dotenv()

settings = Settings.from_env()
app = create_app(settings)

if __name__ == "__main__":
    port = int(os.environ.get("PORT", settings.port))
    app.run(host="0.0.0.0", port=port)
