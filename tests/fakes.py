"""In-memory stand-ins for the judge and mailer."""

import json

from evalent.tools.notify.mailer import EmailResult

GOOD_EVALUATION = json.dumps({
    "band": "Good",
    "score": 3,
    "content_narrative": "Relevant and well developed.",
    "writing_narrative": "Clear organisation.",
    "threshold_comment": "Meets the expected standard.",
})


class FakeJudge:
    """Async judge returning canned replies and recording every call.

    ``reply`` may be a string, an exception instance (raised), or a callable
    taking (system, user) and returning either.
    """

    def __init__(self, reply=GOOD_EVALUATION):
        self.reply = reply
        self.calls = []

    @property
    def call_count(self):
        return len(self.calls)

    async def __call__(self, system, user, *, max_tokens=None):
        self.calls.append({"system": system, "user": user, "max_tokens": max_tokens})
        reply = self.reply(system, user) if callable(self.reply) else self.reply
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeMailer:
    def __init__(self, result=None):
        self.result = result or EmailResult(success=True, id="email-1")
        self.sent = []

    def send(self, to, subject, html):
        self.sent.append({"to": to, "subject": subject, "html": html})
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def routing_judge(system, user):
    """Writing evaluations get JSON; everything else gets prose."""
    if "Return JSON in this exact format" in user:
        return GOOD_EVALUATION
    return "A thoughtful narrative."
