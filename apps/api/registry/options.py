"""
Enumerated option sets for model classification fields.

Each set is a list of (value, label) pairs. Values are what the API stores
and validates against; labels are what the dashboard shows. The business
sets are organization specific and are expected to be edited.
"""

Option = tuple[str, str]

ALGORITHM_OPTIONS: list[Option] = [
    ("xgboost", "XGBoost"),
    ("random_forest", "Random Forest"),
    ("svm", "Support Vector Machine"),
    ("neural_network", "Neural Network"),
    ("linear_regression", "Linear Regression"),
    ("logistic_regression", "Logistic Regression"),
    ("kmeans", "K-Means"),
    ("dbscan", "DBSCAN"),
    ("transformer", "Transformer"),
    ("lstm", "LSTM"),
    ("gpt", "GPT"),
    ("bert", "BERT"),
    ("other", "Other"),
]

FUNCTION_OPTIONS: list[Option] = [
    ("classification", "Classification"),
    ("regression", "Regression"),
    ("clustering", "Clustering"),
    ("recommendation", "Recommendation"),
    ("generation", "Generation"),
]

MODEL_TYPE_OPTIONS: list[Option] = [
    ("python", "Python"),
    ("r", "R"),
    ("scala", "Scala"),
    ("java", "Java"),
    ("other", "Other"),
]

TARGET_LEVEL_OPTIONS: list[Option] = [
    ("nominal", "Nominal"),
    ("ordinal", "Ordinal"),
    ("interval", "Interval"),
    ("ratio", "Ratio"),
]

STATUS_OPTIONS: list[Option] = [
    ("development", "Development"),
    ("testing", "Testing"),
    ("production", "Production"),
    ("deprecated", "Deprecated"),
]

RISK_LEVEL_OPTIONS: list[Option] = [
    ("low", "Low Risk"),
    ("medium", "Medium Risk"),
    ("high", "High Risk"),
]

# --- Business / organization specific ---

ADL_ACRE_OPTIONS: list[Option] = [
    ("analitica_core", "Analítica Core"),
    ("data_science", "Data Science"),
    ("machine_learning", "Machine Learning"),
    ("ai_research", "AI Research"),
]

ADL_ARES_OPTIONS: list[Option] = [
    ("ingenieria", "Ingeniería"),
    ("investigacion", "Investigación"),
    ("desarrollo", "Desarrollo"),
    ("produccion", "Producción"),
]

ADL_ARUS_OPTIONS: list[Option] = [
    ("bac", "BAC"),
    ("corporate", "Corporate"),
    ("retail", "Retail"),
    ("investment", "Investment Banking"),
]

DS_CAMD_OPTIONS: list[Option] = [
    ("clasificacion", "Clasificación"),
    ("regresion", "Regresión"),
    ("clustering", "Clustering"),
    ("recomendacion", "Recomendación"),
    ("generacion", "Generación"),
]

DS_PRMD_OPTIONS: list[Option] = [
    ("python", "Python"),
    ("r", "R"),
    ("scala", "Scala"),
    ("java", "Java"),
    ("sql", "SQL"),
]

TOOL_OPTIONS: list[Option] = [
    ("python_39", "Python 3.9"),
    ("python_310", "Python 3.10"),
    ("python_311", "Python 3.11"),
    ("r_411", "R 4.1.1"),
    ("r_420", "R 4.2.0"),
    ("jupyter", "Jupyter Notebook"),
    ("rstudio", "RStudio"),
    ("databricks", "Databricks"),
    ("sagemaker", "AWS SageMaker"),
    ("mlflow", "MLflow"),
    ("kubeflow", "Kubeflow"),
]

# Public name -> option set, served to the dashboard
OPTION_SETS: dict[str, list[Option]] = {
    "algorithm": ALGORITHM_OPTIONS,
    "function": FUNCTION_OPTIONS,
    "modelType": MODEL_TYPE_OPTIONS,
    "targetLevel": TARGET_LEVEL_OPTIONS,
    "status": STATUS_OPTIONS,
    "riskLevel": RISK_LEVEL_OPTIONS,
    "ADL_ACRE": ADL_ACRE_OPTIONS,
    "ADL_ARES": ADL_ARES_OPTIONS,
    "ADL_ARUS": ADL_ARUS_OPTIONS,
    "DS_CAMD": DS_CAMD_OPTIONS,
    "DS_PRMD": DS_PRMD_OPTIONS,
    "tool": TOOL_OPTIONS,
}


def option_values(options: list[Option]) -> list[str]:
    """Return the stored values of an option set."""
    return [value for value, _ in options]


def is_valid_option(options: list[Option], value: str) -> bool:
    """Check whether a value belongs to an option set."""
    return any(opt_value == value for opt_value, _ in options)
