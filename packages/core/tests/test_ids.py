"""实体 ID 生成测试"""

import re
import time

from adreview.core.ids import new_audit_id, new_id

_HEX24 = re.compile(r"^[0-9a-f]{24}$")


class TestNewId:
    def test_format(self):
        assert _HEX24.match(new_id())

    def test_unique_within_same_millisecond(self):
        ids = [new_id() for _ in range(1000)]

        assert len(set(ids)) == len(ids)

    def test_time_ordered_across_milliseconds(self):
        first = new_id()
        time.sleep(0.002)
        second = new_id()

        assert first[:12] < second[:12]

    def test_audit_ids_unique(self):
        ids = [new_audit_id() for _ in range(1000)]

        assert len(set(ids)) == len(ids)
        assert all(len(i) == 26 for i in ids)
