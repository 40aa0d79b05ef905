"""Dialogue debate driver.

Free-form reactive dialogue:

1. Every persona posts an opening message.
2. After each message the reactive scheduler scores the other personas and
   the top candidate replies. A persona whose call fails is skipped and the
   next turn is scored as if it had spoken.
3. Every third message (from the fourth on) the last window of messages is
   checked for a disagreement. Pairs that keep disagreeing with high
   confidence are sent to a crux room; the room runs to completion inside
   the dialogue and its card is posted.
4. The dialogue ends on the message cap, the wall-clock cap, or when every
   persona failed twice in a row.

The final output is built from the crux cards.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from datetime import UTC, datetime

from cruxboard.debate.crux_room import CruxRoom, cards_to_output
from cruxboard.debate.disagreement import DisagreementRegistry, PairKey, pair_key
from cruxboard.debate.orchestrator import DebateRunner
from cruxboard.debate.scheduler import score_candidates
from cruxboard.errors import CollaboratorError
from cruxboard.models.debate import DebateMode
from cruxboard.models.dialogue import DialogueMessage, DisagreementDetection
from cruxboard.models.events import (
    AgentsReadyEvent,
    CruxRoomSpawningEvent,
    DebateCompleteEvent,
    DebateEvent,
    DebateStartEvent,
    DisagreementDetectedEvent,
    MessagePostedEvent,
    QueueUpdateEvent,
    StatusEvent,
)

logger = logging.getLogger(__name__)

DETECTION_INTERVAL = 3
DETECTION_MIN_MESSAGES = 4
DETECTION_WINDOW = 10
DETECTION_EVIDENCE_MESSAGES = 6
RECENT_CONTEXT = 4
STALL_FACTOR = 2


class DialogueRunner(DebateRunner):
    """Reactive free-form dialogue with crux rooms."""

    mode = DebateMode.DIALOGUE

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.registry = DisagreementRegistry(clock=self._now)
        self._active_rooms: set[PairKey] = set()
        self._room_counter = 0

    def _now(self) -> datetime:
        return self.clock() if self.clock is not None else datetime.now(UTC)

    def _post(
        self,
        persona_id: str,
        content: str,
        reply_to: str | None = None,
        reason: str | None = None,
    ) -> MessagePostedEvent:
        message = DialogueMessage(
            id=f"msg-{len(self.dialogue)}-{persona_id}",
            persona_id=persona_id,
            content=content,
            reply_to=reply_to,
            reason=reason,
        )
        self.dialogue.append(message)
        return MessagePostedEvent(message=message)

    async def _run(self) -> AsyncIterator[DebateEvent]:
        config = self.config
        started_at = self._now()
        yield StatusEvent(phase="dialogue", message="Starting dialogue...")
        yield DebateStartEvent(
            debate_id=config.debate_id,
            topic=config.topic,
            mode=self.mode.value,
            persona_ids=self.persona_ids,
        )
        yield AgentsReadyEvent(persona_ids=self.persona_ids)

        last_speaker: str | None = None
        for persona in self.personas:
            try:
                content = await self.collaborator.micro_turn(
                    persona, None, None, [], self.personas, config.topic
                )
            except CollaboratorError as e:
                logger.warning("Opening failed for %s: %s", persona.id, e)
                yield self._skipped(persona, "micro_turn", 0, e)
                continue
            yield self._post(persona.id, content)
            last_speaker = persona.id

        reason = "max_messages"
        consecutive_skips = 0
        max_skips = STALL_FACTOR * len(self.personas)

        while len(self.dialogue) < config.max_messages:
            if (self._now() - started_at).total_seconds() > config.max_duration_seconds:
                reason = "max_duration"
                break
            if not self.dialogue:
                reason = "stalled"
                break

            last = self.dialogue[-1]
            speaker_id = last_speaker or last.persona_id
            candidates = score_candidates(
                speaker_id,
                last.content,
                [m.persona_id for m in self.dialogue],
                self.personas,
                self.rng,
            )
            yield QueueUpdateEvent(candidates=candidates)
            if not candidates:
                reason = "stalled"
                break

            top = candidates[0]
            persona = self.persona(top.persona_id)
            logger.debug(
                "Reactive turn: %s replies to %s (%s, score=%.2f)",
                persona.id,
                last.id,
                top.reason.value,
                top.score,
            )
            try:
                content = await self.collaborator.micro_turn(
                    persona,
                    last,
                    top.reason,
                    self.dialogue[-(RECENT_CONTEXT + 1):-1],
                    self.personas,
                    config.topic,
                )
            except CollaboratorError as e:
                logger.warning("micro_turn failed for %s: %s", persona.id, e)
                yield self._skipped(persona, "micro_turn", len(self.dialogue), e)
                last_speaker = persona.id
                consecutive_skips += 1
                if consecutive_skips >= max_skips:
                    reason = "stalled"
                    break
                continue

            consecutive_skips = 0
            last_speaker = persona.id
            yield self._post(persona.id, content, last.id, top.reason.value)

            count = len(self.dialogue)
            if count >= DETECTION_MIN_MESSAGES and count % DETECTION_INTERVAL == 0:
                async for event in self._check_disagreement():
                    yield event

        self.output = cards_to_output(self.cards)
        self.complete_reason = reason
        yield DebateCompleteEvent(reason=reason, output=self.output)

    async def _detect(self) -> DisagreementDetection | None:
        window = self.dialogue[-DETECTION_WINDOW:]
        try:
            return await self.collaborator.detect_disagreement(
                window, self.personas, self.config.topic
            )
        except CollaboratorError as e:
            logger.warning("Disagreement detection failed: %s", e)
            return None

    async def _check_disagreement(self) -> AsyncIterator[DebateEvent]:
        detection = await self._detect()
        if detection is None:
            for pair in self.registry.tracked_pairs():
                self.registry.decay(pair)
            return

        flagged = pair_key(*detection.personas)
        eligible = self.registry.update(
            flagged,
            detection.topic,
            detection.confidence,
            self._active_rooms,
            detection.short_label,
        )
        yield DisagreementDetectedEvent(
            detection=detection,
            message_ids=[m.id for m in self.dialogue[-DETECTION_EVIDENCE_MESSAGES:]],
            spawn_eligible=eligible is not None,
        )
        for pair in self.registry.tracked_pairs():
            if pair != flagged:
                self.registry.decay(pair)

        if eligible is None:
            return
        async for event in self._run_room(eligible.pair, eligible.topic, eligible.short_label):
            yield event

    async def _run_room(
        self, pair: PairKey, question: str, short_label: str
    ) -> AsyncIterator[DebateEvent]:
        self._room_counter += 1
        room_id = f"crux-{self._room_counter}-{pair[0]}-{pair[1]}"
        self.registry.record_spawn(pair)
        self._active_rooms.add(pair)
        source_messages = [m.id for m in self.dialogue[-DETECTION_EVIDENCE_MESSAGES:]]
        yield CruxRoomSpawningEvent(
            room_id=room_id,
            question=question,
            short_label=short_label,
            personas=list(pair),
        )

        room = CruxRoom(
            self.collaborator,
            room_id,
            question,
            (self.persona(pair[0]), self.persona(pair[1])),
            source_messages,
            max_turns=self.config.max_crux_turns,
        )
        messages = self.crux_messages.setdefault(room_id, [])
        try:
            async for event in room.events():
                if event.type == "crux_message":
                    messages.append(event.message)
                elif event.type == "crux_card_posted":
                    self.cards.append(event.card)
                yield event
        finally:
            self._active_rooms.discard(pair)
