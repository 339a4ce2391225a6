"""Sample Space — a pre-filled design session for onboarding and demos.

Invariants:
    - Fresh IDs on every call; the sample never shares identity with another space
    - The canvas satisfies every canvas invariant (links resolve, active option selected)
"""

from dataclasses import replace

from archlens.core.design_space import (
    Constraint,
    Decision,
    DesignCanvas,
    DesignSpace,
    Message,
    OpenQuestion,
    Option,
    Outputs,
    Reference,
    Task,
    create_space,
    new_id,
    now_iso,
)
from archlens.core.domain_types import (
    ConstraintSource,
    MessageRole,
    OptionStatus,
    QuestionStatus,
    ReferenceType,
    SpaceStatus,
)


def sample_space() -> DesignSpace:
    space = create_space("Sample: Real-time Notifications")
    user = Message(
        id=new_id(),
        role=MessageRole.USER,
        content=(
            "I need real-time notifications in our Node.js app on AWS. "
            "We run behind nginx and use PostgreSQL."
        ),
    )
    assistant = Message(
        id=new_id(),
        role=MessageRole.ASSISTANT,
        content=(
            "We should compare WebSockets, SSE, and long polling first. "
            "Given bidirectional needs, WebSockets are likely best."
        ),
    )
    sources = (assistant.id,)

    websockets = Option(
        id=new_id(),
        title="WebSockets",
        description="Bidirectional channel for live notifications and acknowledgements.",
        status=OptionStatus.SELECTED,
        branch_score=8,
        source_messages=sources,
    )
    sse = Option(
        id=new_id(),
        title="SSE",
        description="Server push only; simpler infra but unidirectional.",
        status=OptionStatus.REJECTED,
        rejection_reason="Need bidirectional communication.",
        branch_score=4,
        source_messages=sources,
    )
    decision = Decision(
        id=new_id(),
        title="Use WebSockets",
        reasoning="Required for bidirectional updates and realtime ack paths.",
        trade_offs="Higher operational complexity than SSE.",
        option_id=websockets.id,
        source_messages=sources,
    )
    canvas = DesignCanvas(
        problem_statement=(
            "Design and implement real-time notifications for a Node.js AWS deployment "
            "while respecting existing nginx ingress behavior."
        ),
        active_option_id=websockets.id,
        options=(websockets, sse),
        decisions=(decision,),
        constraints=(Constraint(
            id=new_id(),
            description="nginx config must support upgrade headers",
            source=ConstraintSource.CODE,
            decision_id=decision.id,
            source_messages=sources,
        ),),
        open_questions=(OpenQuestion(
            id=new_id(),
            question="How should reconnection backoff work?",
            context="Need client resilience strategy for dropped sockets.",
            status=QuestionStatus.OPEN,
            decision_id=decision.id,
        ),),
        references=(Reference(
            id=new_id(),
            type=ReferenceType.CODE_SNIPPET,
            label="Current nginx.conf",
            content="location /api { proxy_pass http://app; }",
            decision_id=decision.id,
        ),),
    )
    outputs = Outputs(
        design_doc="# Sample Design\n\nThis is a sample crystallized output.",
        tasks=(Task(
            id=new_id(),
            title="Set up WebSocket gateway",
            description="Add WebSocket endpoint and connection lifecycle handling.",
            context="Decision: WebSockets selected for bidirectional communication.",
            files_components=("src/server/ws.ts", "src/server/routes.ts"),
            acceptance_criteria=(
                "Clients connect to /ws", "Heartbeat handles stale sockets",
            ),
        ),),
        generated_at=now_iso(),
    )
    return replace(
        space,
        status=SpaceStatus.CONVERGING,
        conversation=(user, assistant),
        design_canvas=canvas,
        outputs=outputs,
    )
