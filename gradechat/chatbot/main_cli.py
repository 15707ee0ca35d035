from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table
import logging
import os
import uuid

from gradechat.chatbot.actions import GradeWarehouse
from gradechat.chatbot.intent_schema import GRADE_BUCKETS
from gradechat.chatbot.pipeline import build_default_service

console = Console()
log = logging.getLogger("chatbot.cli")


def _print_rows(rows):
    tbl = Table(show_header=True, header_style="bold")
    tbl.add_column("Course")
    tbl.add_column("Term")
    tbl.add_column("Sec")
    tbl.add_column("Prof")
    for _, label in GRADE_BUCKETS:
        tbl.add_column(label, justify="right")
    tbl.add_column("GPA", justify="right")

    for r in rows:
        gpa = r.get("avg_gpa")
        tbl.add_row(
            f"{r.get('subject', '')} {r.get('nbr', '')} — {r.get('course_name', '')}",
            r.get("term") or "",
            r.get("section") or "",
            r.get("prof") or "",
            *[str(r.get(col) or 0) for col, _ in GRADE_BUCKETS],
            f"{gpa:.2f}" if isinstance(gpa, (int, float)) else "N/A",
        )
    console.print(tbl)


def main():
    logging.basicConfig(level=os.getenv("GRADECHAT_LOG_LEVEL", "WARNING"))

    warehouse = GradeWarehouse()
    if not warehouse.exists():
        console.print(
            f"[yellow]⚠️ Warehouse not found at {warehouse.warehouse}. "
            "Run gradechat-ingest first.[/yellow]"
        )

    service = build_default_service()
    session_id = str(uuid.uuid4())

    console.print("[bold]GradeChat — grade distributions by professor[/bold]")
    console.print(
        "Try: 'What's the grade distribution for Professor Smith?', "
        "'tell me about chyn's 212 class', then 'just give me the numbers'"
    )
    console.print("Type 'help' for tips, 'reset' to forget context, 'exit' to quit.\n")

    while True:
        user = Prompt.ask("You")
        cmd = user.strip().lower()
        if cmd in {"exit", "quit"}:
            break
        if cmd == "help":
            console.print(
                "Examples:\n"
                "  • grade distribution for professor smith\n"
                "  • what is smith spring 24 grade distribution like\n"
                "  • tell me about professor johnson in csci 212\n"
                "  • give me just the numbers   (uses the last professor)\n"
                "LLM summaries:\n"
                "  • Set OPENAI_API_KEY to get AI-written answers; otherwise raw counts are shown."
            )
            continue
        if cmd == "reset":
            service.store.reset(session_id)
            console.print("[dim]Context cleared.[/dim]")
            continue

        reply = service.handle(user, session_id)
        style = "yellow" if reply.ambiguous or not reply.grade_data else "white"
        console.print(reply.response, style=style, markup=False, highlight=False)
        if reply.grade_data:
            _print_rows(reply.grade_data)


if __name__ == "__main__":
    main()
