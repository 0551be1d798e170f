class TurnoverAnalysisError(Exception):
    pass


#input file missing, unreadable or not in the expected schema
class DatasetError(TurnoverAnalysisError, ValueError):
    pass


class ModelFitError(TurnoverAnalysisError, RuntimeError):
    """A model variant could not be fitted.

    ``result`` holds the statsmodels results object when the solver produced
    one (e.g. a separated fit) so callers can still inspect it.
    """

    def __init__(self, message, formula=None, result=None):
        super().__init__(message)
        self.formula = formula
        self.result = result


#statistic undefined for the given inputs (zero rows, zero null deviance)
class DegenerateStatisticError(TurnoverAnalysisError, ArithmeticError):
    pass
