from review_apps.main import main

raise SystemExit(main())
