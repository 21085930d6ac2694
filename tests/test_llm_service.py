import pytest
from unittest.mock import Mock, patch
import sys
import os

import requests

# Add the parent directory to the path to import modules
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tripsynth.config import settings
from tripsynth.services import llm_service as llm_module
from tripsynth.services.llm_service import (
    LLMConfig,
    OllamaLLMService,
    SystemInstructions,
    VertexAILLMService,
    default_llm_config,
)


def json_response(payload):
    response = Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = payload
    return response


class TestOllamaLLMService:
    @patch("tripsynth.services.llm_service.requests.post")
    def test_generate_content(self, mock_post):
        mock_post.return_value = json_response({"response": '{"selectedAttractions": []}', "done": True})
        service = OllamaLLMService(endpoint="http://ollama:11434/", model="llama3.1:8b")

        response = service.generate_content(
            user_message="Plan a day",
            system_instruction="You are a planner",
            config=LLMConfig(model="llama3.1:8b", temperature=0.0, top_p=0.5, max_output_tokens=800, timeout_seconds=12),
        )

        assert response.success
        assert response.content == '{"selectedAttractions": []}'
        url = mock_post.call_args.args[0]
        payload = mock_post.call_args.kwargs["json"]
        assert url == "http://ollama:11434/api/generate"
        assert payload["stream"] is False
        assert payload["prompt"].startswith("You are a planner")
        assert payload["options"] == {"temperature": 0.0, "top_p": 0.5, "num_predict": 800}
        assert mock_post.call_args.kwargs["timeout"] == 12

    @patch("tripsynth.services.llm_service.requests.post")
    def test_timeout_is_reported(self, mock_post):
        mock_post.side_effect = requests.Timeout("read timed out")

        response = OllamaLLMService().generate_content("Plan a day", "")

        assert not response.success
        assert response.timed_out
        assert "timed out" in response.error

    @patch("tripsynth.services.llm_service.requests.post")
    def test_connection_error_is_reported(self, mock_post):
        mock_post.side_effect = requests.ConnectionError("refused")

        response = OllamaLLMService().generate_content("Plan a day", "")

        assert not response.success
        assert not response.timed_out
        assert response.content == ""

    @patch("tripsynth.services.llm_service.requests.get")
    def test_availability_check(self, mock_get):
        mock_get.return_value = json_response({"models": [{"name": "llama3.1:8b"}, {"name": "mistral:7b"}]})
        assert OllamaLLMService(model="llama3.1:8b").check_availability()

        mock_get.return_value = json_response({"models": [{"name": "mistral:7b"}]})
        assert not OllamaLLMService(model="llama3.1:8b").check_availability()

    @patch("tripsynth.services.llm_service.requests.get")
    def test_status_when_unreachable(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("refused")

        status = OllamaLLMService().get_status()

        assert status["isAvailable"] is False
        assert status["provider"] == "Fallback System"


class TestVertexAILLMService:
    @patch("tripsynth.services.llm_service.genai.Client")
    def test_generate_content(self, mock_client_cls):
        mock_client = Mock()
        mock_client.models.generate_content.return_value = Mock(text='{"ok": true}')
        mock_client_cls.return_value = mock_client

        with patch.object(settings, "project_id", "demo-project"):
            service = VertexAILLMService()
            response = service.generate_content("Plan a day", "You are a planner")

        assert response.success
        assert response.content == '{"ok": true}'
        mock_client_cls.assert_called_once_with(vertexai=True, project="demo-project", location=settings.region)
        assert mock_client.models.generate_content.call_args.kwargs["model"] == settings.vertex_model

    @patch("tripsynth.services.llm_service.genai.Client")
    def test_errors_are_reported_not_raised(self, mock_client_cls):
        mock_client_cls.return_value.models.generate_content.side_effect = RuntimeError("quota exceeded")

        with patch.object(settings, "project_id", "demo-project"):
            response = VertexAILLMService().generate_content("Plan a day", "")

        assert not response.success
        assert "quota" in response.error

    def test_requires_project_id(self):
        with patch.object(settings, "project_id", ""):
            with pytest.raises(RuntimeError):
                VertexAILLMService()


def test_backend_selection():
    with patch.object(llm_module, "_llm_service_instance", None), \
            patch.object(settings, "generator_backend", "ollama"):
        service = llm_module.get_llm_service()
        assert isinstance(service, OllamaLLMService)
        assert llm_module.get_llm_service() is service


def test_default_config_follows_backend():
    assert default_llm_config(OllamaLLMService(model="qwen2:7b")).model == "qwen2:7b"
    assert default_llm_config(Mock(provider="vertex")).model == settings.vertex_model


def test_system_instruction_documents_the_schema():
    instruction = SystemInstructions.trip_planner()
    assert '"selectedAttractions"' in instruction
    assert '"suggestedTime"' in instruction
    assert "ONLY" in instruction
