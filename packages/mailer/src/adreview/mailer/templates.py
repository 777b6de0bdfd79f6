"""通知邮件模板"""

from html import escape

from .models import EmailMessage

SUBJECT_PREFIX = "[Advertisement Compliance]"


def render_notification_email(
    to: str,
    title: str,
    message: str,
    frontend_url: str,
    task_id: str | None = None,
    recipient_name: str = "",
) -> EmailMessage:
    """渲染通知邮件；有关联任务时附带“查看任务”链接"""
    greeting = f"Dear {escape(recipient_name)}," if recipient_name else "Hello,"
    link_html = ""
    link_text = ""
    if task_id:
        task_url = f"{frontend_url.rstrip('/')}/tasks/{task_id}"
        link_html = (
            f'<p><a href="{escape(task_url)}" '
            'style="background:#0d6efd;color:#fff;padding:8px 16px;'
            'text-decoration:none;border-radius:4px;">View Task</a></p>'
        )
        link_text = f"\nView task: {task_url}"

    html = (
        '<div style="font-family:Arial,sans-serif;max-width:600px;">'
        f"<h2>{escape(title)}</h2>"
        f"<p>{greeting}</p>"
        f"<p>{escape(message)}</p>"
        f"{link_html}"
        '<hr><p style="color:#6c757d;font-size:12px;">'
        "This is an automated message from the Advertisement Compliance system."
        "</p></div>"
    )
    text = f"{title}\n\n{message}{link_text}"
    return EmailMessage(to=to, subject=f"{SUBJECT_PREFIX} {title}", html=html, text=text)
