from pet_core.config.settings import PetSettings


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("API_KEY", "  sk-from-env  ")
    monkeypatch.setenv("BASE_URL", "https://llm.example.com/v1/")
    monkeypatch.setenv("MAX_HISTORY_PAIRS", "4")
    s = PetSettings()
    assert s.api_key == "sk-from-env"
    assert s.base_url == "https://llm.example.com/v1"
    assert s.max_history_pairs == 4
    assert s.request_deadline == 30.0


def test_blank_credential_is_none(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("API_KEY", "   ")
    assert PetSettings().api_key is None


def test_yaml_config_file(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("API_KEY", raising=False)
    monkeypatch.delenv("MODEL", raising=False)
    cfg = tmp_path / "pet.yaml"
    cfg.write_text("provider: deepseek\nmodel: deepseek-chat\nrequest_deadline: 12\n", encoding="utf-8")
    monkeypatch.setenv("PET_CONFIG_FILE", str(cfg))
    s = PetSettings()
    assert s.provider == "deepseek"
    assert s.model == "deepseek-chat"
    assert s.request_deadline == 12.0
