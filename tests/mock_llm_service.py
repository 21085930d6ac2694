#!/usr/bin/env python3
"""
Scripted generator for tests: returns canned responses without a running model.
"""

import os
import sys
import json
import time
import logging
import threading
from typing import Any, Dict, List, Optional, Union

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tripsynth.services.llm_service import LLMResponse

logger = logging.getLogger(__name__)


class MockLLMService:
    """Mock generator that replays scripted responses (the last one repeats)"""

    provider = "mock"
    model = "mock-model"

    def __init__(
        self,
        responses: Optional[List[Union[str, LLMResponse, Exception]]] = None,
        delay: float = 0.0,
        release_event: Optional[threading.Event] = None,
    ):
        self.responses = list(responses) if responses is not None else [""]
        self.delay = delay
        self.release_event = release_event
        self.calls: List[Dict[str, Any]] = []

    def generate_content(self, user_message: str, system_instruction: str, config=None) -> LLMResponse:
        logger.info(f"Mock generator called with: {user_message[:80]}...")
        self.calls.append({"user_message": user_message, "system_instruction": system_instruction, "config": config})

        if self.delay:
            time.sleep(self.delay)
        if self.release_event is not None:
            self.release_event.wait(timeout=5)

        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        if isinstance(response, LLMResponse):
            return response
        return LLMResponse(success=True, content=response, raw_response=None)

    def get_status(self) -> Dict[str, Any]:
        return {"isAvailable": True, "endpoint": "mock://", "model": self.model, "provider": "Mock"}


def selection_payload(items: List[Dict[str, Any]], total_duration: int = 0, estimated_cost: int = 0) -> str:
    """Well-formed generator output for the given items"""
    return json.dumps({
        "selectedAttractions": items,
        "totalDuration": total_duration,
        "estimatedCost": estimated_cost,
    })


def selection_item(attraction_id: str, name: str, order: int, time_of_day: str = "09:00", duration: int = 90) -> Dict[str, Any]:
    return {
        "attractionId": attraction_id,
        "name": name,
        "reason": "Great fit for the request",
        "visitOrder": order,
        "suggestedTime": time_of_day,
        "duration": duration,
    }
