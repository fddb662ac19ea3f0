"""Lab 03: two turns on one thread; the second relies on the first."""
from __future__ import annotations
from typing import List

from agentlabs.agents.agent import ChatClientAgent
from agentlabs.config_loader import Settings
from .common import done, print_stream, start

QUESTIONS = [
    "Who was Bob Marley and what was his impact on reggae music?",
    "Tell me more about his beliefs and how they influenced his music.",
]


def run(settings: Settings, questions: List[str] = QUESTIONS) -> List[str]:
    client, _ = start(settings)
    agent = ChatClientAgent(
        client,
        instructions="You are a knowledgeable guide on music history and culture.",
        name="MusicHistorian",
    )
    thread = agent.new_thread()

    answers = []
    for i, question in enumerate(questions, start=1):
        print(f"Question {i}: {question}\n")
        answers.append(print_stream(agent.run_stream(question, thread)))
        print("")
    done()
    return answers
