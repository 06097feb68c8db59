import os


class Resources:
    """Base resources configuration.

    Subclasses set dataset-specific column names and default feature selections.
    """

    # Identifier
    resources_name: str = ""

    # Core folders
    REPORT_FOLDER: str = "reports"

    # Columns
    ID_COLUMN: str = ""
    ATTRITION_COLUMN: str = ""
    REASON_COLUMN: str | None = None

    CONTINUOUS_FEATURES: list[str] = []
    CATEGORICAL_FEATURES: list[str] = []

    @classmethod
    def selected_features(cls) -> list[str]:
        return list(cls.CONTINUOUS_FEATURES) + list(cls.CATEGORICAL_FEATURES)

    # ------- Filepath helpers (can be overridden if needed) -------
    @classmethod
    def report_dir(cls) -> str:
        return os.path.join(cls.REPORT_FOLDER, cls.resources_name)

    @classmethod
    def result_table_path(cls, ext: str = 'csv') -> str:
        return os.path.join(cls.report_dir(), f"{cls.resources_name}_analysis_result.{ext}")

    @classmethod
    def summary_path(cls) -> str:
        return os.path.join(cls.report_dir(), f"{cls.resources_name}_attrition_by_cluster.csv")

    @classmethod
    def profiles_path(cls) -> str:
        return os.path.join(cls.report_dir(), f"{cls.resources_name}_cluster_profiles.csv")


class HRResources(Resources):
    resources_name = "hr"

    ID_COLUMN = "EmpID"
    ATTRITION_COLUMN = "Termd"
    REASON_COLUMN = "TermReason"

    DOB_COLUMN = "DOB"
    HIRE_DATE_COLUMN = "DateofHire"
    TERMINATION_DATE_COLUMN = "DateofTermination"

    # Derived by preprocessing.derive_features
    AGE_COLUMN = "Age"
    TENURE_COLUMN = "TenureYears"

    CONTINUOUS_FEATURES = ["PayRate", "Age", "TenureYears"]
    CATEGORICAL_FEATURES = ["Sex", "MaritalDesc", "RaceDesc", "Department", "Position"]
