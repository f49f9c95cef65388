from time import time

from domain.ports import Clock


# epoch em segundos (float), relógio de parede: comparável com o valor gravado no Secret
class SystemClock(Clock):
    def now_epoch(self) -> float:
        return time()
