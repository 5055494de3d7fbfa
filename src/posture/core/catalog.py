"""Fixed question catalog and grouping helpers.

Question ids are stable and act as the join key for scoring, persistence
and the per-function report sections.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import TypeVar

from ..models.question import FUNCTION_ORDER, NistFunction, Question
from ..models.submission import ResponseItem, Submission

QUESTIONS: tuple[Question, ...] = (
    Question(
        id="GO.SC-1",
        function=NistFunction.GOVERN,
        category="GO.SC: Strategic Context",
        control="GO.SC-1: The organization's role in the supply chain is understood.",
        prompt=(
            "How is cybersecurity risk managed at the leadership level? Is there a "
            "designated individual or committee responsible for overseeing cloud security?"
        ),
    ),
    Question(
        id="GO.RM-1",
        function=NistFunction.GOVERN,
        category="GO.RM: Risk Management",
        control="GO.RM-1: Risk management processes are defined and documented.",
        prompt="Do you have an established risk tolerance for your cloud environment?",
    ),
    Question(
        id="ID.AM-1",
        function=NistFunction.IDENTIFY,
        category="ID.AM: Asset Management",
        control="ID.AM-1: Physical devices and systems are inventoried.",
        prompt="Please provide an inventory of all Azure subscriptions and tenants.",
    ),
    Question(
        id="ID.AM-2",
        function=NistFunction.IDENTIFY,
        category="ID.AM: Asset Management",
        control="ID.AM-2: Software platforms and applications are inventoried.",
        prompt=(
            "Please provide a list of all mission-critical applications running on "
            "Azure and all Office 365 services in use."
        ),
    ),
    Question(
        id="ID.AM-3",
        function=NistFunction.IDENTIFY,
        category="ID.AM: Asset Management",
        control="ID.AM-3: Communication and data flows are mapped.",
        prompt=(
            "Who is the business owner for the data in your SharePoint and OneDrive "
            "environment? Who decides what data is sensitive?"
        ),
    ),
    Question(
        id="ID.BE-3",
        function=NistFunction.IDENTIFY,
        category="ID.BE: Business Environment",
        control="ID.BE-3: Priorities for organizational mission are established.",
        prompt=(
            "If your core Azure-based student database were unavailable for 24 hours, "
            "what would the business impact be?"
        ),
    ),
    Question(
        id="PR.AC-4",
        function=NistFunction.PROTECT,
        category="PR.AC: Identity Management & Access Control",
        control="PR.AC-4: MFA is used for all users.",
        prompt=(
            "Is Multi-Factor Authentication (MFA) enabled for all user accounts, "
            "including administrators? Please specify any exceptions."
        ),
    ),
    Question(
        id="PR.DS-1",
        function=NistFunction.PROTECT,
        category="PR.DS: Data Security",
        control="PR.DS-1: Data is protected at rest and in transit.",
        prompt=(
            "Are Azure Storage accounts, databases, and other data sources configured "
            "with encryption at rest? Is TLS/SSL enforced for all data in transit?"
        ),
    ),
    Question(
        id="PR.DS-4",
        function=NistFunction.PROTECT,
        category="PR.DS: Data Security",
        control="PR.DS-4: Data Loss Prevention (DLP) is implemented.",
        prompt=(
            "Do you have DLP policies configured in Office 365 for Exchange, "
            "SharePoint, and OneDrive?"
        ),
    ),
    Question(
        id="PR.PT-1",
        function=NistFunction.PROTECT,
        category="PR.PT: Protective Technology",
        control="PR.PT-1: Auditable events are logged.",
        prompt=(
            "Is auditing enabled for all critical security events in Azure and "
            "Office 365? Are these logs centralized?"
        ),
    ),
    Question(
        id="DE.CM-1",
        function=NistFunction.DETECT,
        category="DE.CM: Security Continuous Monitoring",
        control="DE.CM-1: The network is monitored for malicious activity.",
        prompt="What tools do you use for continuous monitoring of your Azure tenant?",
    ),
    Question(
        id="RS.RP-1",
        function=NistFunction.RESPOND,
        category="RS.RP: Response Planning",
        control="RS.RP-1: A response plan is in place.",
        prompt=(
            "Do you have a documented incident response plan specifically for a cloud "
            "security event involving your Azure or O365 tenant?"
        ),
    ),
    Question(
        id="RS.MI-1",
        function=NistFunction.RESPOND,
        category="RS.MI: Mitigation",
        control="RS.MI-1: Mitigation activities are executed.",
        prompt=(
            "What are your documented procedures for containing an incident, such as "
            "a compromised admin account or a data breach in SharePoint?"
        ),
    ),
    Question(
        id="RC.RP-1",
        function=NistFunction.RECOVER,
        category="RC.RP: Recovery Planning",
        control="RC.RP-1: Recovery plan is executed.",
        prompt=(
            "Is there a documented disaster recovery plan for your Azure workloads? "
            "How often is it tested?"
        ),
    ),
    Question(
        id="RC.IM-1",
        function=NistFunction.RECOVER,
        category="RC.IM: Improvements",
        control="RC.IM-1: Lessons learned are incorporated.",
        prompt=(
            "Is there a formal process for reviewing past security incidents to "
            "improve your security posture?"
        ),
    ),
)

_BY_ID: dict[str, Question] = {q.id: q for q in QUESTIONS}

MATURITY_LABELS: dict[int, str] = {
    0: "None",
    1: "Initial",
    2: "Developing",
    3: "Defined",
    4: "Managed",
}


def maturity_label(maturity: int) -> str:
    return f"{maturity} - {MATURITY_LABELS[maturity]}"

# Sample data used by `posture sample` and the test suite.
SAMPLE_ORGANIZATION = "Contoso Education"
SAMPLE_CONTACT = "secops@contoso.edu"
SAMPLE_ANSWERS: dict[str, tuple[str, int]] = {
    "GO.SC-1": (
        "Cybersecurity risk is governed by the IT Governance Committee chaired by the CIO. "
        "Cloud risk is on the board agenda twice per year with KPIs covering MFA adoption, "
        "privileged access reviews, and incident MTTR.",
        2,
    ),
    "GO.RM-1": (
        "Risk tolerance is documented in the Enterprise Risk Register. For cloud services we "
        "target RTO <= 8 hours and RPO <= 4 hours for Tier-1 workloads; high-risk changes "
        "require CAB approval.",
        1,
    ),
    "ID.AM-1": (
        "We operate two Azure AD tenants and three subscriptions (Prod, NonProd, Sandbox). "
        "Resources are tagged with Owner, DataClass, and Criticality; inventory is exported "
        "weekly to Log Analytics.",
        3,
    ),
    "ID.AM-2": (
        "Mission-critical apps include SIS on Azure SQL, LMS on AKS, and O365 (Exchange, "
        "SharePoint, OneDrive, Teams). Business apps are tracked in a CMDB with dependency maps.",
        2,
    ),
    "ID.AM-3": (
        "Data owners are assigned for each SharePoint site and OneDrive. Sensitive data is "
        "defined in the Data Classification Policy (Public, Internal, Confidential, Restricted).",
        2,
    ),
    "ID.BE-3": (
        "If the Azure-based student database is unavailable for 24 hours, enrollment, grading, "
        "and attendance are disrupted; estimated impact ~$250k and reputational risk during "
        "exam periods.",
        2,
    ),
    "PR.AC-4": (
        "MFA is enforced via Conditional Access for all users with number matching; break-glass "
        "accounts are stored in a safe and monitored. Admin roles are time-bound via PIM.",
        3,
    ),
    "PR.DS-1": (
        "Encryption at rest uses Microsoft-managed keys; TLS 1.2+ enforced; private endpoints "
        "used for storage and databases; Defender for Cloud flags are remediated within 7 days.",
        3,
    ),
    "PR.DS-4": (
        "Purview DLP policies protect SSN/PCI/PHI across Exchange, SharePoint, and OneDrive; "
        "policy tips are enabled with auto-quarantine for high risk.",
        2,
    ),
    "PR.PT-1": (
        "Unified audit logging is enabled; Azure diagnostic settings forward to Log Analytics "
        "and Sentinel. Critical events (role changes, mailbox rules) are alerted in real-time.",
        2,
    ),
    "DE.CM-1": (
        "Defender for Cloud and Microsoft Sentinel provide continuous monitoring; analytic rules "
        "cover impossible travel, OAuth consent grants, and key vault access anomalies.",
        1,
    ),
    "RS.RP-1": (
        "An IR plan aligned to NIST is reviewed annually; communication templates and severity "
        "levels are defined for cloud incidents.",
        2,
    ),
    "RS.MI-1": (
        "Containment runbooks exist for compromised admin accounts and SharePoint data exposure; "
        "playbooks auto-disable tokens, reset creds, and revoke sessions.",
        2,
    ),
    "RC.RP-1": (
        "DR plans leverage Azure Backup and ASR; failover tests are performed semi-annually for "
        "Tier-1 services with documented results.",
        3,
    ),
    "RC.IM-1": (
        "After-action reviews occur within 10 business days; lessons learned feed backlog items "
        "and policy updates tracked to completion.",
        2,
    ),
}

T = TypeVar("T", Question, ResponseItem)


def get_question(question_id: str) -> Question:
    """Look up a catalog question by id. Raises KeyError for unknown ids."""
    return _BY_ID[question_id]


def _function_of(item: Question | ResponseItem) -> NistFunction:
    return item.meta.function if isinstance(item, ResponseItem) else item.function


def group_by_function(items: Iterable[T]) -> dict[NistFunction, list[T]]:
    """Group questions or responses by NIST function.

    Groups appear in first-seen order; items keep their input order.
    """
    grouped: dict[NistFunction, list[T]] = {}
    for item in items:
        grouped.setdefault(_function_of(item), []).append(item)
    return grouped


def iter_function_sections(
    responses: Iterable[ResponseItem],
) -> Iterator[tuple[NistFunction, list[ResponseItem]]]:
    """Yield (function, responses) in fixed GOVERN..RECOVER order, skipping empty ones."""
    grouped = group_by_function(responses)
    for fn in FUNCTION_ORDER:
        items = grouped.get(fn)
        if items:
            yield fn, items


def check_coverage(submission: Submission) -> list[str]:
    """Return problems with catalog coverage; an empty list means complete.

    Every catalog question must have exactly one response, in catalog order.
    """
    problems: list[str] = []
    seen = [item.meta.id for item in submission.responses]
    expected = [q.id for q in QUESTIONS]

    for qid in expected:
        count = seen.count(qid)
        if count == 0:
            problems.append(f"Missing response for {qid}")
        elif count > 1:
            problems.append(f"Duplicate responses for {qid}")
    for qid in seen:
        if qid not in _BY_ID:
            problems.append(f"Unknown question id {qid}")

    if not problems and seen != expected:
        problems.append("Responses are not in catalog order")
    return problems


def sample_submission() -> Submission:
    """Build the bundled Contoso Education example submission."""
    answers = [(q, *SAMPLE_ANSWERS[q.id]) for q in QUESTIONS]
    return Submission.build(SAMPLE_ORGANIZATION, SAMPLE_CONTACT, answers)
