def load_all_models():
    import model.user                                    # noqa: F401
    import model.password_reset                          # noqa: F401
    import model.coin                                    # noqa: F401
    import model.social.models                           # noqa: F401
    import model.trade                                   # noqa: F401
    import model.subscription                            # noqa: F401
