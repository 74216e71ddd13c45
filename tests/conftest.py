import os

from dotenv import load_dotenv


# Load the project's .env so integration tests can reach real GitLab / LLM
# endpoints when credentials are configured.
PROJECT_ROOT = os.path.dirname(os.path.dirname(__file__))
ENV_PATH = os.path.join(PROJECT_ROOT, ".env")

# Missing file is fine.
load_dotenv(dotenv_path=ENV_PATH, override=False)
