from src.modelforge.config import Settings, load_settings


def test_defaults():
    settings = load_settings({})
    assert settings == Settings()
    assert settings.llm_retries == 2
    assert settings.default_file_path == "main.py"
    assert settings.artifact_store == "memory"


def test_overrides_and_bad_values():
    settings = load_settings(
        {
            "MODELFORGE_LLM_RETRIES": "0",
            "MODELFORGE_LLM_TIMEOUT": "not-a-number",
            "MODELFORGE_ARTIFACT_STORE": " Mongo ",
            "MODELFORGE_REQUIRE_MONGO": "yes",
            "MODELFORGE_CORS_ORIGINS": "https://app.example, https://admin.example",
        }
    )
    assert settings.llm_retries == 1
    assert settings.llm_timeout == 60.0
    assert settings.artifact_store == "mongo"
    assert settings.require_mongo is True
    assert settings.cors_origins == ("https://app.example", "https://admin.example")
