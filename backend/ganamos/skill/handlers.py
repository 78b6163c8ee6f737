"""Voice Intent Handlers — ordered request handlers for the Alexa skill endpoint.

Invariants:
    - Handlers are tried in order; the first whose can_handle() is true answers
    - Multi-turn state (pending job, pending completion, disambiguation) lives
      only in session attributes echoed back to Alexa
    - Any handler needing the API answers "Please link your Ganamos account
      first." with a LinkAccount card when no access token is present
    - An exception inside a handler becomes the generic apology, never a 500

Design Decisions:
    - can_handle/handle pairs mirror the ASK SDK request-handler contract so the
      skill model maps one-to-one onto classes here
    - The API client is injected as a factory so tests can route it into the app
"""

import asyncio
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field

from ganamos.skill.client import GanamosClient
from ganamos.skill.speech import (
    ordinal, pause, speak_date, speak_job, speak_sats, ssml, strip_ssml,
)

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], GanamosClient]

LINK_ACCOUNT_SPEECH = "Please link your Ganamos account first."
TROUBLE_SPEECH = "I'm having trouble right now. Please try again later."
WHAT_NEXT = "What would you like to do?"
MAX_READ_JOBS = 5
MAX_DISAMBIGUATION = 3

_WHITESPACE = re.compile(r"\s+")


# ─── Request / response envelopes ────────────────────────────────

@dataclass
class SkillRequest:
    request_type: str
    intent_name: str | None = None
    slots: dict[str, str] = field(default_factory=dict)
    session_attributes: dict = field(default_factory=dict)
    access_token: str | None = None
    reason: str | None = None

    @classmethod
    def from_envelope(cls, envelope: dict) -> "SkillRequest":
        request = envelope.get("request") or {}
        intent = request.get("intent") or {}
        slots = {
            name: slot.get("value")
            for name, slot in (intent.get("slots") or {}).items()
            if isinstance(slot, dict) and slot.get("value")
        }
        session = envelope.get("session") or {}
        user = ((envelope.get("context") or {}).get("System") or {}).get("user") or {}
        return cls(
            request_type=request.get("type", ""),
            intent_name=intent.get("name"),
            slots=slots,
            session_attributes=dict(session.get("attributes") or {}),
            access_token=user.get("accessToken") or None,
            reason=request.get("reason"),
        )

    def is_intent(self, *names: str) -> bool:
        return self.request_type == "IntentRequest" and self.intent_name in names


class ResponseBuilder:
    def __init__(self, session_attributes: dict):
        self.session_attributes = session_attributes
        self._speech: str | None = None
        self._reprompt: str | None = None
        self._directives: list[dict] = []
        self._card: dict | None = None

    def speak(self, text: str) -> "ResponseBuilder":
        self._speech = text
        return self

    def reprompt(self, text: str) -> "ResponseBuilder":
        self._reprompt = text
        return self

    def elicit_slot(self, slot_name: str) -> "ResponseBuilder":
        self._directives.append({"type": "Dialog.ElicitSlot", "slotToElicit": slot_name})
        return self

    def link_account_card(self) -> "ResponseBuilder":
        self._card = {"type": "LinkAccount"}
        return self

    def build(self) -> dict:
        response: dict = {}
        if self._speech is not None:
            response["outputSpeech"] = {"type": "SSML", "ssml": ssml(self._speech)}
            if self._card is None:
                self._card = {
                    "type": "Simple",
                    "title": "Ganamos",
                    "content": strip_ssml(self._speech),
                }
        if self._card is not None:
            response["card"] = self._card
        if self._reprompt is not None:
            response["reprompt"] = {
                "outputSpeech": {"type": "SSML", "ssml": ssml(self._reprompt)},
            }
        if self._directives:
            response["directives"] = self._directives
        response["shouldEndSession"] = self._reprompt is None and not self._directives
        return {
            "version": "1.0",
            "sessionAttributes": self.session_attributes,
            "response": response,
        }


def link_account(rb: ResponseBuilder) -> dict:
    return rb.speak(LINK_ACCOUNT_SPEECH).link_account_card().build()


# ─── Job matching ────────────────────────────────────────────────

def find_matching_jobs(jobs: list[dict], spoken: str) -> list[dict]:
    """Rank jobs against a spoken description.

    +1 for each spoken word (over 2 chars) that overlaps a title/description
    word, +3 when the whole phrase appears in the title or description.
    """
    normalized = spoken.lower().strip()
    words = [w for w in _WHITESPACE.split(normalized) if len(w) > 2]
    scored = []
    for job in jobs:
        title = (job.get("title") or "").lower()
        description = (job.get("description") or "").lower()
        job_words = _WHITESPACE.split(title) + _WHITESPACE.split(description)
        score = sum(
            1 for word in words
            if any(word in w or w in word for w in job_words)
        )
        if normalized in title or normalized in description:
            score += 3
        if score > 0:
            scored.append((score, job))
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [job for _, job in scored]


def _pending_complete(job: dict, fixer_name: str) -> dict:
    return {
        "jobId": job["id"],
        "jobTitle": job["title"],
        "reward": job["reward"],
        "fixerName": fixer_name,
    }


def _confirm_completion(rb: ResponseBuilder, job: dict, fixer_name: str, lead: str) -> dict:
    rb.session_attributes["pendingComplete"] = _pending_complete(job, fixer_name)
    rb.session_attributes["awaitingConfirmation"] = "completeJob"
    return (
        rb.speak(
            f'{lead} "{job["title"]}" for {speak_sats(job["reward"])}. '
            f"Should I mark it as complete and assign it to {fixer_name}?",
        )
        .reprompt(f'Should I mark "{job["title"]}" as complete?')
        .build()
    )


# ─── Handlers ────────────────────────────────────────────────────

class RequestHandler:
    def can_handle(self, req: SkillRequest) -> bool:
        raise NotImplementedError

    async def handle(
        self, req: SkillRequest, rb: ResponseBuilder, clients: ClientFactory,
    ) -> dict:
        raise NotImplementedError


class LaunchHandler(RequestHandler):
    def can_handle(self, req):
        return req.request_type == "LaunchRequest"

    async def handle(self, req, rb, clients):
        if not req.access_token:
            return (
                rb.speak(
                    "Welcome to Ganamos! To get started, please link your "
                    "Ganamos account in the Alexa app.",
                )
                .link_account_card()
                .build()
            )
        async with clients(req.access_token) as api:
            balance_data, jobs_data = await asyncio.gather(
                api.get_balance(), api.get_jobs(),
            )
        name = balance_data.get("name")
        total = jobs_data.get("totalCount", 0)
        group = jobs_data.get("groupName")

        greeting = f"Welcome back{', ' + name if name else ''}! "
        greeting += f"You have {speak_sats(balance_data.get('balance', 0))}. "
        if total == 0:
            greeting += f"There are no open jobs in {group} right now. "
            greeting += 'You can say "add a job" to create one.'
        elif total == 1:
            greeting += f"There is 1 open job in {group}. "
            greeting += "Would you like me to tell you about it?"
        else:
            greeting += f"There are {total} open jobs in {group}. "
            greeting += "Would you like me to read them?"
        return (
            rb.speak(greeting)
            .reprompt('You can say "list jobs", "add a job", or "check my balance".')
            .build()
        )


class ListJobsHandler(RequestHandler):
    def can_handle(self, req):
        return req.is_intent("ListJobsIntent")

    async def handle(self, req, rb, clients):
        if not req.access_token:
            return link_account(rb)
        async with clients(req.access_token) as api:
            data = await api.get_jobs()
        jobs, total, group = data["jobs"], data["totalCount"], data["groupName"]

        if total == 0:
            return (
                rb.speak(
                    f"There are no open jobs in {group} right now. "
                    "Would you like to add one?",
                )
                .reprompt('Say "add a job" to create a new job.')
                .build()
            )

        rb.session_attributes["jobs"] = jobs
        rb.session_attributes["currentJobIndex"] = 0
        if total == 1:
            speech = (
                f"There is 1 open job in {group}. {pause()} "
                f"{speak_job(jobs[0], include_date=True)}. "
                "Would you like to mark it as complete?"
            )
        else:
            speech = (
                f"There are {total} open jobs in {group}. {pause()} "
                "Would you like me to read them out to you?"
            )
        return rb.speak(speech).reprompt("Would you like me to read the jobs?").build()


class ReadJobsYesHandler(RequestHandler):
    def can_handle(self, req):
        return (
            req.is_intent("AMAZON.YesIntent")
            and bool(req.session_attributes.get("jobs"))
            and "currentJobIndex" in req.session_attributes
        )

    async def handle(self, req, rb, clients):
        jobs = rb.session_attributes["jobs"]
        shown = jobs[:MAX_READ_JOBS]
        speech = "".join(
            f"{ordinal(i + 1)}: {speak_job(job)}. {pause(0.8)} "
            for i, job in enumerate(shown)
        )
        if len(jobs) > len(shown):
            speech += f"And {len(jobs) - len(shown)} more. "
        speech += "Would you like to mark any of these as complete?"
        return (
            rb.speak(speech)
            .reprompt(
                "Say the job description and who completed it. For example, "
                '"Marlowe cleaned the garage".',
            )
            .build()
        )


class AddJobHandler(RequestHandler):
    def can_handle(self, req):
        return req.is_intent("AddJobIntent")

    async def handle(self, req, rb, clients):
        if not req.access_token:
            return link_account(rb)
        description = req.slots.get("JobDescription")
        reward_text = req.slots.get("RewardAmount")
        if not description:
            return (
                rb.speak("What job would you like to add?")
                .reprompt("Please describe the job you want to add.")
                .elicit_slot("JobDescription")
                .build()
            )
        if not reward_text:
            return (
                rb.speak(
                    f'Got it, "{description}". How many sats would you like to '
                    "offer as a reward?",
                )
                .reprompt("How many sats for the reward?")
                .elicit_slot("RewardAmount")
                .build()
            )
        try:
            reward = int(reward_text)
        except ValueError:
            reward = 0
        if reward <= 0:
            return (
                rb.speak("Please specify a valid reward amount in sats.")
                .reprompt("How many sats would you like to offer?")
                .elicit_slot("RewardAmount")
                .build()
            )

        async with clients(req.access_token) as api:
            balance = (await api.get_balance())["balance"]
        if balance < reward:
            return (
                rb.speak(
                    "I can't create this job because you don't have enough sats. "
                    f"You have {speak_sats(balance)}, but this job requires "
                    f"{speak_sats(reward)}. Would you like to create a job with a "
                    "smaller reward?",
                )
                .reprompt("Would you like to try with a smaller reward?")
                .build()
            )

        rb.session_attributes["pendingJob"] = {"description": description, "reward": reward}
        rb.session_attributes["awaitingConfirmation"] = "addJob"
        return (
            rb.speak(
                f'I\'ll add a job for "{description}" with a reward of '
                f"{speak_sats(reward)}. This will deduct {speak_sats(reward)} from "
                f"your balance of {speak_sats(balance)}. Should I proceed?",
            )
            .reprompt("Should I add this job?")
            .build()
        )


class AddJobConfirmHandler(RequestHandler):
    def can_handle(self, req):
        return (
            req.is_intent("AMAZON.YesIntent")
            and req.session_attributes.get("awaitingConfirmation") == "addJob"
            and bool(req.session_attributes.get("pendingJob"))
        )

    async def handle(self, req, rb, clients):
        if not req.access_token:
            return link_account(rb)
        pending = rb.session_attributes.pop("pendingJob")
        rb.session_attributes.pop("awaitingConfirmation", None)
        description, reward = pending["description"], pending["reward"]

        async with clients(req.access_token) as api:
            result = await api.create_job(description, reward)
        if not result.get("success"):
            if "balance" in result and "required" in result:
                return rb.speak(
                    "I couldn't create the job because you don't have enough sats. "
                    f"You have {speak_sats(result['balance'])}, but need "
                    f"{speak_sats(result['required'])}.",
                ).build()
            error = result.get("error") or "Please try again later."
            return rb.speak(f"I couldn't add the job. {error}").build()

        title = (result.get("job") or {}).get("title") or description
        return rb.speak(
            f'Done! I\'ve added the job "{title}" for {speak_sats(reward)}. '
            f"Your new balance is {speak_sats(result.get('newBalance') or 0)}.",
        ).build()


class AddJobCancelHandler(RequestHandler):
    def can_handle(self, req):
        return (
            req.is_intent("AMAZON.NoIntent")
            and req.session_attributes.get("awaitingConfirmation") == "addJob"
        )

    async def handle(self, req, rb, clients):
        rb.session_attributes.pop("pendingJob", None)
        rb.session_attributes.pop("awaitingConfirmation", None)
        return (
            rb.speak(
                "Okay, I won't add that job. Is there anything else I can help "
                "you with?",
            )
            .reprompt(WHAT_NEXT)
            .build()
        )


class CompleteJobHandler(RequestHandler):
    def can_handle(self, req):
        return req.is_intent("CompleteJobIntent")

    async def handle(self, req, rb, clients):
        if not req.access_token:
            return link_account(rb)
        fixer_name = req.slots.get("FixerName")
        spoken_job = req.slots.get("JobDescription")
        if not fixer_name:
            return (
                rb.speak("Who completed the job?")
                .reprompt("Please tell me who completed the job.")
                .elicit_slot("FixerName")
                .build()
            )

        async with clients(req.access_token) as api:
            jobs = (await api.get_jobs())["jobs"]

        if not spoken_job:
            if not jobs:
                return rb.speak("There are no open jobs to mark as complete.").build()
            if len(jobs) == 1:
                return _confirm_completion(rb, jobs[0], fixer_name, "I found the job")
            return (
                rb.speak(
                    f"There are {len(jobs)} open jobs. Which one did "
                    f"{fixer_name} complete?",
                )
                .reprompt("Which job was completed?")
                .elicit_slot("JobDescription")
                .build()
            )

        matches = find_matching_jobs(jobs, spoken_job)
        if not matches:
            return (
                rb.speak(
                    f'I couldn\'t find an open job matching "{spoken_job}". '
                    "Would you like me to list the available jobs?",
                )
                .reprompt("Would you like me to list the jobs?")
                .build()
            )
        if len(matches) == 1:
            return _confirm_completion(rb, matches[0], fixer_name, "I found the job")

        rb.session_attributes["disambiguationJobs"] = matches[:MAX_DISAMBIGUATION]
        rb.session_attributes["pendingFixerName"] = fixer_name
        first, second = matches[0], matches[1]
        speech = (
            f"I found {len(matches)} jobs that could match. {pause()} "
            f'The first one is "{first["title"]}" for {speak_sats(first["reward"])}, '
            f"created {speak_date(first['createdAt'])}. {pause()} "
            f'The second one is "{second["title"]}" for {speak_sats(second["reward"])}, '
            f"created {speak_date(second['createdAt'])}. {pause()} "
            "Are you referring to the first or second?"
        )
        return rb.speak(speech).reprompt("Please say first or second.").build()


class CompleteJobDisambiguationHandler(RequestHandler):
    def can_handle(self, req):
        return (
            req.is_intent("SelectOptionIntent", "AMAZON.SelectIntent")
            and bool(req.session_attributes.get("disambiguationJobs"))
        )

    async def handle(self, req, rb, clients):
        jobs = rb.session_attributes["disambiguationJobs"]
        selection = (
            req.slots.get("ListPosition") or req.slots.get("OptionNumber") or "1"
        ).lower()
        if selection == "first":
            index = 0
        elif selection == "second":
            index = 1
        else:
            try:
                index = int(selection) - 1
            except ValueError:
                index = -1
        if not 0 <= index < len(jobs):
            return rb.speak("Please say first or second.").reprompt("First or second?").build()

        job = jobs[index]
        fixer_name = rb.session_attributes.pop("pendingFixerName", None)
        rb.session_attributes.pop("disambiguationJobs", None)
        rb.session_attributes["pendingComplete"] = _pending_complete(job, fixer_name)
        rb.session_attributes["awaitingConfirmation"] = "completeJob"
        return (
            rb.speak(
                f'Okay, "{job["title"]}" for {speak_sats(job["reward"])}. '
                f"Should I mark it as complete and assign it to {fixer_name}?",
            )
            .reprompt("Should I mark this job as complete?")
            .build()
        )


class CompleteJobConfirmHandler(RequestHandler):
    def can_handle(self, req):
        return (
            req.is_intent("AMAZON.YesIntent")
            and req.session_attributes.get("awaitingConfirmation") == "completeJob"
            and bool(req.session_attributes.get("pendingComplete"))
        )

    async def handle(self, req, rb, clients):
        if not req.access_token:
            return link_account(rb)
        pending = rb.session_attributes.pop("pendingComplete")
        rb.session_attributes.pop("awaitingConfirmation", None)
        title, fixer_name = pending["jobTitle"], pending["fixerName"]

        async with clients(req.access_token) as api:
            result = await api.complete_job(pending["jobId"], fixer_name)
        if not result.get("success"):
            return rb.speak(
                result.get("error") or "I couldn't complete the job. Please try again.",
            ).build()
        if result.get("requiresVerification"):
            return rb.speak(
                result.get("message")
                or f'The job "{title}" was posted by someone else. An email has '
                f"been sent to verify that {fixer_name} completed it.",
            ).build()
        return rb.speak(
            result.get("message")
            or f'Done! The job "{title}" has been marked complete and {fixer_name} '
            f"has been awarded {speak_sats(pending['reward'])}.",
        ).build()


class CompleteJobCancelHandler(RequestHandler):
    def can_handle(self, req):
        return (
            req.is_intent("AMAZON.NoIntent")
            and req.session_attributes.get("awaitingConfirmation") == "completeJob"
        )

    async def handle(self, req, rb, clients):
        rb.session_attributes.pop("pendingComplete", None)
        rb.session_attributes.pop("awaitingConfirmation", None)
        return (
            rb.speak(
                "Okay, I won't mark that job as complete. Is there anything else "
                "I can help you with?",
            )
            .reprompt(WHAT_NEXT)
            .build()
        )


class CheckBalanceHandler(RequestHandler):
    def can_handle(self, req):
        return req.is_intent("CheckBalanceIntent")

    async def handle(self, req, rb, clients):
        if not req.access_token:
            return link_account(rb)
        async with clients(req.access_token) as api:
            data = await api.get_balance()
        return (
            rb.speak(f"You have {speak_sats(data.get('balance', 0))}. {WHAT_NEXT}")
            .reprompt(WHAT_NEXT)
            .build()
        )


class HelpHandler(RequestHandler):
    def can_handle(self, req):
        return req.is_intent("AMAZON.HelpIntent")

    async def handle(self, req, rb, clients):
        return (
            rb.speak(
                "I can help you manage jobs in your Ganamos group. "
                'You can say "list jobs" to see available jobs, '
                '"add a job" to create a new one, '
                "or tell me when someone completes a job, like "
                '"Marlowe cleaned the garage". '
                'You can also say "check my balance" to see your sats. '
                f"{WHAT_NEXT}",
            )
            .reprompt(WHAT_NEXT)
            .build()
        )


class StopHandler(RequestHandler):
    def can_handle(self, req):
        return req.is_intent("AMAZON.StopIntent", "AMAZON.CancelIntent")

    async def handle(self, req, rb, clients):
        return rb.speak("Goodbye! Keep up the great work fixing your community.").build()


class FallbackHandler(RequestHandler):
    def can_handle(self, req):
        return req.is_intent("AMAZON.FallbackIntent")

    async def handle(self, req, rb, clients):
        return (
            rb.speak(
                "I didn't quite understand that. You can ask me to list jobs, "
                f"add a job, or mark a job as complete. {WHAT_NEXT}",
            )
            .reprompt(WHAT_NEXT)
            .build()
        )


class SessionEndedHandler(RequestHandler):
    def can_handle(self, req):
        return req.request_type == "SessionEndedRequest"

    async def handle(self, req, rb, clients):
        logger.info(f"Skill session ended: {req.reason}")
        return rb.build()


# Confirmation handlers precede the generic Yes/No readers
HANDLERS: list[RequestHandler] = [
    LaunchHandler(),
    AddJobConfirmHandler(),
    AddJobCancelHandler(),
    CompleteJobConfirmHandler(),
    CompleteJobCancelHandler(),
    CompleteJobDisambiguationHandler(),
    ListJobsHandler(),
    ReadJobsYesHandler(),
    AddJobHandler(),
    CompleteJobHandler(),
    CheckBalanceHandler(),
    HelpHandler(),
    StopHandler(),
    FallbackHandler(),
    SessionEndedHandler(),
]


def error_response(session_attributes: dict) -> dict:
    return (
        ResponseBuilder(session_attributes)
        .speak("Sorry, I had trouble doing what you asked. Please try again.")
        .reprompt("Please try again.")
        .build()
    )


async def dispatch(envelope: dict, clients: ClientFactory) -> dict:
    """Route one Alexa request envelope to the first matching handler."""
    req = SkillRequest.from_envelope(envelope)
    rb = ResponseBuilder(req.session_attributes)
    for handler in HANDLERS:
        if not handler.can_handle(req):
            continue
        try:
            return await handler.handle(req, rb, clients)
        except Exception as e:
            logger.error(
                f"{type(handler).__name__} failed: {type(e).__name__}: {e}",
                exc_info=True,
            )
            if isinstance(handler, LaunchHandler):
                return ResponseBuilder(req.session_attributes).speak(
                    "Welcome to Ganamos! I'm having trouble connecting right now. "
                    "Please try again in a moment.",
                ).build()
            return ResponseBuilder(req.session_attributes).speak(TROUBLE_SPEECH).build()
    logger.warning(
        f"No skill handler for {req.request_type}/{req.intent_name}",
    )
    return error_response(req.session_attributes)
