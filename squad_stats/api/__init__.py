from .transport import ApiResult, Outcome, StatsApiClient, classify_status

__all__ = ['ApiResult', 'Outcome', 'StatsApiClient', 'classify_status']
