"""packages/mailer 测试配置"""

import pytest
from adreview.mailer.models import EmailMessage


@pytest.fixture
def message() -> EmailMessage:
    return EmailMessage(
        to="alice@example.com",
        subject="[Advertisement Compliance] New Task Assigned",
        html="<p>hi</p>",
        text="hi",
    )
