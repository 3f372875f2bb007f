"""
Collection names in the document store.
"""
STYLES = "styles"
USER_TOKENS = "userTokens"
ANONYMOUS_USERS = "anonymousUsers"
GENERATIONS = "generations"
TOPUP_TRANSACTIONS = "topupTransactions"
TOPUP_PLANS = "topupPlans"
SETTINGS = "settings"
ADMINS = "admins"
FAVORITES = "favorites"
FEEDBACKS = "feedbacks"
VISITORS = "visitors"
BETA_TESTERS = "betaTesters"
