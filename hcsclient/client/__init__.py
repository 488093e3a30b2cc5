# Topic service client components
