class AlertState:
    """Latest alert set for the UI. Each publish replaces the previous one."""

    def __init__(self):
        self.reset()

    def reset(self):
        self._alerts = ()
        self._has_evaluated_once = False

    def publish(self, alerts):
        self._alerts = tuple(alerts)
        self._has_evaluated_once = True

    @property
    def alerts(self):
        return list(self._alerts)

    @property
    def has_evaluated_once(self):
        return self._has_evaluated_once

    @property
    def all_clear(self):
        return self._has_evaluated_once and not self._alerts

    def snapshot(self):
        return {
            "alerts": self.alerts,
            "evaluated": self._has_evaluated_once,
            "all_clear": self.all_clear,
        }
